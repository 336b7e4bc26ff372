"""
Partner pharmacies available at checkout
"""

from typing import List, Optional

from pharmacy_app.schemas.catalog import Pharmacy

_PHARMACIES = (
    Pharmacy(id="pharma1", name="PharmaCare", delivery_fee=150, delivery_time="Today, 1:00 PM - 5:00 PM"),
    Pharmacy(id="pharma2", name="MediMart", delivery_fee=150, delivery_time="Today, 3:00 PM - 5:00 PM"),
    Pharmacy(id="pharma3", name="HealthPlus", delivery_fee=155, delivery_time="Tomorrow, 10:00 AM - 1:00 PM"),
    Pharmacy(id="pharma4", name="Corner Drugs", delivery_fee=140, delivery_time="Today, 12:00 PM - 4:00 PM"),
    Pharmacy(id="pharma5", name="City Chemists", delivery_fee=160, delivery_time="Tomorrow, 9:00 AM - 12:00 PM"),
)


class PharmacyDirectory:
    """Static directory of pharmacies, no location lookup"""

    def __init__(self, pharmacies=_PHARMACIES):
        self._pharmacies = tuple(pharmacies)
        self._by_id = {pharmacy.id: pharmacy for pharmacy in self._pharmacies}

    def list_pharmacies(self) -> List[Pharmacy]:
        return list(self._pharmacies)

    def get_pharmacy(self, pharmacy_id: Optional[str]) -> Optional[Pharmacy]:
        if not pharmacy_id:
            return None
        return self._by_id.get(pharmacy_id)


pharmacy_directory = PharmacyDirectory()


def get_pharmacy_directory() -> PharmacyDirectory:
    return pharmacy_directory
