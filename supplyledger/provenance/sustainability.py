"""
Sustainability Metrics

Summarizes a product's recorded provenance into sustainability figures.

Only certifications and recycled content come from the ledger. Carbon
footprint and transport distance are fixed reference values until a
logistics data source is connected.
"""

from dataclasses import dataclass
from typing import Any, Dict, Tuple

from .index import ProvenanceIndex


CARBON_FOOTPRINT_KG = 2.5           # kg CO2 per unit
TRANSPORT_MILES = 1200              # raw materials -> retail
TRANSPORT_KG_CO2_PER_MILE = 0.001
LOW_FOOTPRINT_THRESHOLD_KG = 3.0

BASE_SCORE = 50
RECYCLED_CONTENT_BONUS = 20
SUSTAINABLE_PACKAGING_BONUS = 15
LOW_FOOTPRINT_BONUS = 15
SUSTAINABLE_PACKAGING_CERT = 'SUSTAINABLE_PACKAGING'


@dataclass(frozen=True)
class SustainabilityMetrics:
    product_id: str
    carbon_footprint: float
    recycled_content_percentage: float
    sustainability_score: int
    certifications: Tuple[str, ...]
    transport_miles: float
    transport_emissions: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            'product_id': self.product_id,
            'carbon_footprint': self.carbon_footprint,
            'recycled_content_percentage': self.recycled_content_percentage,
            'sustainability_score': self.sustainability_score,
            'certifications': list(self.certifications),
            'transportation_impact': {
                'total_miles': self.transport_miles,
                'carbon_emissions': self.transport_emissions,
            },
        }


def sustainability_metrics(index: ProvenanceIndex, product_id: str) -> SustainabilityMetrics:
    """
    Compute sustainability metrics for a product.

    Args:
        index: Provenance index to read entries from
        product_id: Product to summarize

    Returns:
        SustainabilityMetrics (an unknown product gets the base figures
        with no certifications and 0% recycled content)
    """
    entries = index.by_product(product_id)

    # Unique certifications, first-seen order
    certifications = tuple(dict.fromkeys(
        cert for entry in entries for cert in entry.certifications
    ))

    recycled = 0
    for entry in entries:
        composition = entry.test_results.material_composition if entry.test_results else None
        if composition is not None and composition.recycled_content:
            recycled = composition.recycled_content
            break

    score = BASE_SCORE
    if recycled > 0:
        score += RECYCLED_CONTENT_BONUS
    if SUSTAINABLE_PACKAGING_CERT in certifications:
        score += SUSTAINABLE_PACKAGING_BONUS
    if CARBON_FOOTPRINT_KG < LOW_FOOTPRINT_THRESHOLD_KG:
        score += LOW_FOOTPRINT_BONUS

    return SustainabilityMetrics(
        product_id=product_id,
        carbon_footprint=CARBON_FOOTPRINT_KG,
        recycled_content_percentage=recycled,
        sustainability_score=min(score, 100),
        certifications=certifications,
        transport_miles=TRANSPORT_MILES,
        transport_emissions=TRANSPORT_MILES * TRANSPORT_KG_CO2_PER_MILE,
    )
