"""
Supply Chain Entry Model

The payload stored in each block: one provenance event for a product batch.

All structures are frozen dataclasses. A sealed block's hash covers the
canonical JSON of its entry, so entries must not change once appended.

Serialized keys use the camelCase field names of the ledger payload format
(productId, batchId, testResults, ...), which are part of every block hash.
"""

from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from ..core_crypto.hash_codec import format_timestamp, parse_timestamp


class EntryError(ValueError):
    """Raised when a supply-chain entry is malformed."""
    pass


# ============================================================================
# Enumerations
# ============================================================================

class Stage(Enum):
    """Lifecycle stage of a provenance event (order is not enforced)."""
    RAW_MATERIALS = "raw_materials"
    MANUFACTURING = "manufacturing"
    QUALITY_TESTING = "quality_testing"
    PACKAGING = "packaging"
    DISTRIBUTION = "distribution"
    RETAIL = "retail"

    @classmethod
    def coerce(cls, value) -> 'Stage':
        """Accept a Stage or its string value."""
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            valid = ", ".join(s.value for s in cls)
            raise EntryError(f"Unknown stage {value!r} (expected one of: {valid})") from None


class TestOutcome(Enum):
    __test__ = False  # not a pytest class

    PASSED = "PASSED"
    FAILED = "FAILED"


def _opt_ts(value: Optional[datetime]) -> Optional[str]:
    return format_timestamp(value) if value is not None else None


def _opt_parse(value: Optional[str]) -> Optional[datetime]:
    return parse_timestamp(value) if value is not None else None


def _drop_none(data: Dict[str, Any]) -> Dict[str, Any]:
    return {k: v for k, v in data.items() if v is not None}


# ============================================================================
# Test Results
# ============================================================================

@dataclass(frozen=True)
class SafetyDetails:
    """Substance screening flags from a toxicity test."""
    bpa_free: bool = True
    phthalate_free: bool = True
    lead_free: bool = True
    food_safe_grade: str = "A"  # 'A' | 'B' | 'C'

    def to_dict(self) -> Dict[str, Any]:
        return {
            'bpa_free': self.bpa_free,
            'phthalate_free': self.phthalate_free,
            'lead_free': self.lead_free,
            'food_safe_grade': self.food_safe_grade,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'SafetyDetails':
        return cls(
            bpa_free=data.get('bpa_free', True),
            phthalate_free=data.get('phthalate_free', True),
            lead_free=data.get('lead_free', True),
            food_safe_grade=data.get('food_safe_grade', "A"),
        )


@dataclass(frozen=True)
class ToxicityTest:
    result: TestOutcome
    test_date: Optional[datetime] = None
    lab_name: str = ""
    certificate_id: str = ""
    details: Optional[SafetyDetails] = None

    def __post_init__(self):
        object.__setattr__(self, 'result', TestOutcome(getattr(self.result, 'value', self.result)))

    @property
    def passed(self) -> bool:
        return self.result is TestOutcome.PASSED

    def to_dict(self) -> Dict[str, Any]:
        return _drop_none({
            'result': self.result.value,
            'testDate': _opt_ts(self.test_date),
            'labName': self.lab_name,
            'certificateId': self.certificate_id,
            'details': self.details.to_dict() if self.details is not None else None,
        })

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ToxicityTest':
        details = data.get('details')
        return cls(
            result=TestOutcome(data['result']),
            test_date=_opt_parse(data.get('testDate')),
            lab_name=data.get('labName', ""),
            certificate_id=data.get('certificateId', ""),
            details=SafetyDetails.from_dict(details) if details is not None else None,
        )


@dataclass(frozen=True)
class DurabilityTest:
    result: TestOutcome
    cycle_count: int = 0
    temperature_range: str = ""
    leak_test: bool = False

    def __post_init__(self):
        object.__setattr__(self, 'result', TestOutcome(getattr(self.result, 'value', self.result)))

    def to_dict(self) -> Dict[str, Any]:
        return {
            'result': self.result.value,
            'cycleCount': self.cycle_count,
            'temperatureRange': self.temperature_range,
            'leakTest': self.leak_test,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'DurabilityTest':
        return cls(
            result=TestOutcome(data['result']),
            cycle_count=data.get('cycleCount', 0),
            temperature_range=data.get('temperatureRange', ""),
            leak_test=data.get('leakTest', False),
        )


@dataclass(frozen=True)
class MaterialComposition:
    primary_material: str
    recycled_content: float = 0  # Percent
    biodegradable: bool = False
    chemical_analysis: Tuple[Tuple[str, str], ...] = ()  # (substance, finding)

    def __post_init__(self):
        analysis = self.chemical_analysis
        if isinstance(analysis, dict):
            analysis = tuple(analysis.items())
        object.__setattr__(self, 'chemical_analysis', tuple(analysis))

    def to_dict(self) -> Dict[str, Any]:
        return {
            'primaryMaterial': self.primary_material,
            'recycledContent': self.recycled_content,
            'biodegradable': self.biodegradable,
            'chemicalAnalysis': dict(self.chemical_analysis),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'MaterialComposition':
        return cls(
            primary_material=data['primaryMaterial'],
            recycled_content=data.get('recycledContent', 0),
            biodegradable=data.get('biodegradable', False),
            chemical_analysis=data.get('chemicalAnalysis', {}),
        )


@dataclass(frozen=True)
class TestResults:
    """Structured lab results; opaque to the ledger itself."""
    __test__ = False

    toxicity_test: Optional[ToxicityTest] = None
    durability_test: Optional[DurabilityTest] = None
    material_composition: Optional[MaterialComposition] = None

    def to_dict(self) -> Dict[str, Any]:
        return _drop_none({
            'toxicityTest': (
                self.toxicity_test.to_dict() if self.toxicity_test is not None else None
            ),
            'durabilityTest': (
                self.durability_test.to_dict() if self.durability_test is not None else None
            ),
            'materialComposition': (
                self.material_composition.to_dict() if self.material_composition is not None else None
            ),
        })

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'TestResults':
        tox = data.get('toxicityTest')
        dur = data.get('durabilityTest')
        comp = data.get('materialComposition')
        return cls(
            toxicity_test=ToxicityTest.from_dict(tox) if tox is not None else None,
            durability_test=DurabilityTest.from_dict(dur) if dur is not None else None,
            material_composition=MaterialComposition.from_dict(comp) if comp is not None else None,
        )


# ============================================================================
# Supply Chain Entry
# ============================================================================

@dataclass(frozen=True)
class SupplyChainEntry:
    """
    One provenance event for a product batch.

    product_id and batch_id are not unique per block: a batch spans one
    block per stage. digital_signature is empty until the ledger stamps it.
    """
    product_id: str
    batch_id: str
    stage: Stage
    location: str
    timestamp: datetime
    certifications: Tuple[str, ...] = ()
    verified_by: str = ""
    digital_signature: str = ""
    test_results: Optional[TestResults] = None

    def __post_init__(self):
        object.__setattr__(self, 'stage', Stage.coerce(self.stage))
        certs = self.certifications
        if isinstance(certs, str):
            raise EntryError("certifications must be a sequence of strings, not a string")
        object.__setattr__(self, 'certifications', tuple(certs or ()))

    def validate(self) -> None:
        """
        Check required fields.

        Raises:
            EntryError: If any required field is missing or malformed
        """
        for name in ('product_id', 'batch_id', 'location', 'verified_by'):
            value = getattr(self, name)
            if not isinstance(value, str) or not value.strip():
                raise EntryError(f"{name} is required")
        if not isinstance(self.timestamp, datetime) or self.timestamp.tzinfo is None:
            raise EntryError("timestamp must be a timezone-aware datetime")
        if not all(isinstance(c, str) and c for c in self.certifications):
            raise EntryError("certifications must be non-empty strings")
        if not isinstance(self.digital_signature, str):
            raise EntryError("digital_signature must be a string")

    def with_signature(self, signature: str) -> 'SupplyChainEntry':
        return replace(self, digital_signature=signature)

    @property
    def has_certifications(self) -> bool:
        return len(self.certifications) > 0

    @property
    def toxicity_passed(self) -> bool:
        tox = self.test_results.toxicity_test if self.test_results else None
        return tox is not None and tox.passed

    def to_dict(self) -> Dict[str, Any]:
        """Payload mapping hashed into the block (see canonical_json)."""
        data = {
            'productId': self.product_id,
            'batchId': self.batch_id,
            'stage': self.stage.value,
            'location': self.location,
            'timestamp': format_timestamp(self.timestamp),
            'certifications': list(self.certifications),
            'verifiedBy': self.verified_by,
            'digitalSignature': self.digital_signature,
        }
        if self.test_results is not None:
            data['testResults'] = self.test_results.to_dict()
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'SupplyChainEntry':
        """
        Create an entry from its payload mapping.

        Raises:
            EntryError: If a required key is missing
        """
        try:
            results = data.get('testResults')
            return cls(
                product_id=data['productId'],
                batch_id=data['batchId'],
                stage=data['stage'],
                location=data['location'],
                timestamp=parse_timestamp(data['timestamp']),
                certifications=tuple(data.get('certifications', ())),
                verified_by=data.get('verifiedBy', ""),
                digital_signature=data.get('digitalSignature', ""),
                test_results=TestResults.from_dict(results) if results is not None else None,
            )
        except KeyError as e:
            raise EntryError(f"Missing entry field: {e.args[0]}") from None

    def __str__(self) -> str:
        return (
            f"[{format_timestamp(self.timestamp)}] {self.stage.value} "
            f"product={self.product_id} batch={self.batch_id} @ {self.location}"
        )
