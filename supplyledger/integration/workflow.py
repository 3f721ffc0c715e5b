"""
Batch Workflow

The standard five-stage provenance sequence recorded for a new product
batch, plus the sample catalogue used to seed demo ledgers.

Stage sequence (fixed):
    raw_materials -> manufacturing -> quality_testing -> packaging -> distribution

Locations, certifications, verifiers and lab results below are the fixed
content every batch workflow records; changing them changes every future
batch's hashes and history, so treat them as part of the data format.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Iterator, List, Sequence, Tuple

from ..blockchain.entry import (
    DurabilityTest,
    MaterialComposition,
    SafetyDetails,
    Stage,
    SupplyChainEntry,
    TestOutcome,
    TestResults,
    ToxicityTest,
)


# ============================================================================
# Certificates
# ============================================================================

@dataclass(frozen=True)
class ComplianceFlags:
    fda_approved: bool = False
    eu_compliant: bool = False
    rohs_compliant: bool = False
    reach_compliant: bool = False
    recycled_content_verified: bool = False


@dataclass(frozen=True)
class MaterialCertificate:
    """Third-party material certificate supplied when a batch is registered."""
    certificate_id: str
    issued_by: str
    issued_date: datetime
    expiry_date: datetime
    material_type: str
    certifications: ComplianceFlags = field(default_factory=ComplianceFlags)
    test_lab: str = ""
    qr_code: str = ""


# ============================================================================
# Fixed Stage Content
# ============================================================================

SAFE_DETAILS = SafetyDetails(
    bpa_free=True, phthalate_free=True, lead_free=True, food_safe_grade='A'
)

SUPPLIER_CHEMICAL_ANALYSIS = (
    ('BPA', 'Not Detected (<0.1 ppm)'),
    ('Phthalates', 'Not Detected (<0.1 ppm)'),
    ('Lead', 'Not Detected (<0.1 ppm)'),
    ('Mercury', 'Not Detected (<0.1 ppm)'),
    ('Cadmium', 'Not Detected (<0.1 ppm)'),
)


def batch_workflow_entries(
    product_id: str,
    batch_id: str,
    certificates: Sequence[MaterialCertificate],
    clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc)
) -> Iterator[SupplyChainEntry]:
    """
    Yield the five workflow entries in stage order.

    Entries are built lazily so each one is timestamped when the consumer
    asks for it (i.e. just before it is appended). Signatures are left
    empty for the ledger to stamp.
    """
    now = clock()
    yield SupplyChainEntry(
        product_id=product_id,
        batch_id=batch_id,
        stage=Stage.RAW_MATERIALS,
        location='Certified Material Supplier - Taiwan',
        timestamp=now,
        certifications=tuple(cert.certificate_id for cert in certificates),
        test_results=TestResults(
            toxicity_test=ToxicityTest(
                result=TestOutcome.PASSED,
                test_date=now,
                lab_name='SGS International',
                certificate_id='SGS-2024-ICEPACA-001',
                details=SAFE_DETAILS,
            ),
            material_composition=MaterialComposition(
                primary_material='Medical Grade TPU',
                recycled_content=15,
                biodegradable=False,
                chemical_analysis=SUPPLIER_CHEMICAL_ANALYSIS,
            ),
        ),
        verified_by='ICEPACA_QA_TEAM',
    )

    yield SupplyChainEntry(
        product_id=product_id,
        batch_id=batch_id,
        stage=Stage.MANUFACTURING,
        location='ICEPACA Manufacturing Facility - Oregon, USA',
        timestamp=clock(),
        certifications=('ISO_9001', 'FDA_REGISTERED', 'GMP_CERTIFIED'),
        test_results=TestResults(
            durability_test=DurabilityTest(
                result=TestOutcome.PASSED,
                cycle_count=1000,
                temperature_range='-40°F to 140°F',
                leak_test=True,
            ),
        ),
        verified_by='MANUFACTURING_QC',
    )

    now = clock()
    yield SupplyChainEntry(
        product_id=product_id,
        batch_id=batch_id,
        stage=Stage.QUALITY_TESTING,
        location='ICEPACA Quality Lab - Oregon, USA',
        timestamp=now,
        certifications=('QUALITY_PASSED', 'BATCH_APPROVED'),
        test_results=TestResults(
            toxicity_test=ToxicityTest(
                result=TestOutcome.PASSED,
                test_date=now,
                lab_name='ICEPACA Internal Lab',
                certificate_id=f'ICEPACA-QT-{batch_id}',
                details=SAFE_DETAILS,
            ),
            durability_test=DurabilityTest(
                result=TestOutcome.PASSED,
                cycle_count=1500,
                temperature_range='-50°F to 150°F',
                leak_test=True,
            ),
        ),
        verified_by='QUALITY_ASSURANCE_LEAD',
    )

    yield SupplyChainEntry(
        product_id=product_id,
        batch_id=batch_id,
        stage=Stage.PACKAGING,
        location='ICEPACA Packaging Facility - Oregon, USA',
        timestamp=clock(),
        certifications=('SUSTAINABLE_PACKAGING', 'RECYCLABLE_MATERIALS'),
        verified_by='PACKAGING_SUPERVISOR',
    )

    yield SupplyChainEntry(
        product_id=product_id,
        batch_id=batch_id,
        stage=Stage.DISTRIBUTION,
        location='ICEPACA Distribution Center - California, USA',
        timestamp=clock(),
        certifications=('CHAIN_OF_CUSTODY', 'TEMPERATURE_CONTROLLED'),
        verified_by='LOGISTICS_MANAGER',
    )


# ============================================================================
# Sample Data
# ============================================================================

SAMPLE_CERTIFICATES: List[MaterialCertificate] = [
    MaterialCertificate(
        certificate_id='CERT-TPU-2024-001',
        issued_by='Materials Testing Institute',
        issued_date=datetime(2024, 1, 15, tzinfo=timezone.utc),
        expiry_date=datetime(2025, 1, 15, tzinfo=timezone.utc),
        material_type='Thermoplastic Polyurethane (TPU)',
        certifications=ComplianceFlags(
            fda_approved=True,
            eu_compliant=True,
            rohs_compliant=True,
            reach_compliant=True,
            recycled_content_verified=True,
        ),
        test_lab='SGS International',
        qr_code='QR_CERT_TPU_001',
    ),
]

# (product_id, batch_id)
SAMPLE_PRODUCTS: Tuple[Tuple[str, str], ...] = (
    ('medium-pack', 'BATCH-MP-2024-001'),
    ('large-pack', 'BATCH-LP-2024-001'),
    ('small-pack', 'BATCH-SP-2024-001'),
)
