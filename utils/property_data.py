"""
Property record utilities: the decision-record entity plus load-time
normalization of persisted collections and weight sets.
"""
import json
import logging
import math
from dataclasses import dataclass
from typing import Any, Callable, Dict, List

from config import Config
from services.decision.categories import CATEGORY_KEYS, CategoryIntegrityError, check_category_keys

logger = logging.getLogger(__name__)

PROPERTY_SCHEMA_VERSION = 2


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


def _to_float(value: Any, default: float = 0.0) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    return number if math.isfinite(number) else default


@dataclass
class PropertyRecord:
    id: str
    address: str
    scores: Dict[str, float]
    structural_score: float
    listing_url: str = ''
    price: float = 0.0
    beds: float = 0.0
    baths: float = 0.0
    sq_ft: float = 0.0
    notes: str = ''
    image_base64: str = ''
    schema_version: int = PROPERTY_SCHEMA_VERSION

    def __post_init__(self):
        check_category_keys(self.scores)
        for key in CATEGORY_KEYS:
            value = self.scores[key]
            if not _is_number(value):
                raise CategoryIntegrityError(f"Score for '{key}' is not a number: {value!r}")
            if not Config.SCORE_SCALE_MIN <= value <= Config.SCORE_SCALE_MAX:
                raise CategoryIntegrityError(
                    f"Score for '{key}' is outside {Config.SCORE_SCALE_MIN:g}-{Config.SCORE_SCALE_MAX:g}: {value!r}"
                )

    def __repr__(self):
        return f'<PropertyRecord {self.id}: {self.address[:50]}>'

    @property
    def emotional_pull(self) -> float:
        return float(self.scores['emotionalPull'])

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'PropertyRecord':
        """Build a record from its current-version wire shape"""
        scores = data.get('scores')
        if not isinstance(scores, dict):
            raise CategoryIntegrityError(f"Invalid scores: expected a mapping, got {type(scores).__name__}")

        return cls(
            id=str(data.get('id') or ''),
            address=str(data.get('address') or ''),
            listing_url=data.get('listingUrl') or '',
            price=_to_float(data.get('price')),
            beds=_to_float(data.get('beds')),
            baths=_to_float(data.get('baths')),
            sq_ft=_to_float(data.get('sqFt')),
            notes=data.get('notes') or '',
            image_base64=data.get('imageBase64') or '',
            scores=dict(scores),
            structural_score=_to_float(data.get('structuralScore')),
            schema_version=int(data.get('schemaVersion') or PROPERTY_SCHEMA_VERSION),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Wire shape used for local storage and remote sync"""
        return {
            'id': self.id,
            'address': self.address,
            'listingUrl': self.listing_url,
            'price': self.price,
            'beds': self.beds,
            'baths': self.baths,
            'sqFt': self.sq_ft,
            'notes': self.notes,
            'imageBase64': self.image_base64,
            'scores': {key: self.scores[key] for key in CATEGORY_KEYS},
            'structuralScore': self.structural_score,
            'schemaVersion': self.schema_version,
        }


def _clamp_score(value: float) -> float:
    return min(max(value, Config.SCORE_SCALE_MIN), Config.SCORE_SCALE_MAX)


def _migrate_v1(data: Dict[str, Any]) -> Dict[str, Any]:
    """v1 records carried overallScore, could miss category scores and were not range checked"""
    migrated = dict(data)

    structural = data.get('structuralScore')
    overall = data.get('overallScore')
    if _is_number(structural):
        migrated['structuralScore'] = structural
    elif _is_number(overall):
        migrated['structuralScore'] = overall
    else:
        migrated['structuralScore'] = 0
    migrated.pop('overallScore', None)

    scores = data.get('scores') if isinstance(data.get('scores'), dict) else {}
    migrated['scores'] = {
        key: _clamp_score(scores[key]) if _is_number(scores.get(key)) else Config.DEFAULT_CATEGORY_SCORE
        for key in CATEGORY_KEYS
    }

    migrated['schemaVersion'] = 2
    return migrated


# from-version -> step producing the next version
PROPERTY_MIGRATIONS: Dict[int, Callable[[Dict[str, Any]], Dict[str, Any]]] = {
    1: _migrate_v1,
}


def migrate_property(data: Dict[str, Any]) -> Dict[str, Any]:
    """Upgrade one persisted property dict to PROPERTY_SCHEMA_VERSION"""
    version = data.get('schemaVersion')
    if not isinstance(version, int) or isinstance(version, bool):
        version = 1

    while version < PROPERTY_SCHEMA_VERSION:
        data = PROPERTY_MIGRATIONS[version](data)
        version = data['schemaVersion']

    return data


def parse_stored_json(value: Any) -> Any:
    """
    Persisted values may come back as JSON text or already decoded.
    Unparseable text yields None.
    """
    if isinstance(value, (str, bytes)):
        try:
            return json.loads(value)
        except (json.JSONDecodeError, TypeError, ValueError) as e:
            logger.warning(f"Failed to parse stored JSON: {e}")
            return None
    return value


def normalize_properties(stored: Any) -> List[PropertyRecord]:
    """
    Load a persisted property collection.

    Absent or malformed collections become an empty list. Category
    integrity errors in current-version records propagate.
    """
    parsed = parse_stored_json(stored)
    if parsed is None:
        return []
    if not isinstance(parsed, list):
        logger.warning(f"Stored properties have unexpected type: {type(parsed)}")
        return []

    records = []
    for item in parsed:
        if not isinstance(item, dict):
            logger.warning(f"Skipping stored property with unexpected type: {type(item)}")
            continue
        records.append(PropertyRecord.from_dict(migrate_property(item)))
    return records


def normalize_weight_payload(stored: Any, weight_manager) -> Dict[str, float]:
    """Load a persisted raw weight set, defaulting to equal raw weights"""
    parsed = parse_stored_json(stored)
    if parsed is not None and not isinstance(parsed, dict):
        logger.warning(f"Stored weights have unexpected type: {type(parsed)}")
    return weight_manager.hydrate_raw_weights(parsed)


def serialize_properties(properties: List[PropertyRecord]) -> List[Dict[str, Any]]:
    return [p.to_dict() for p in properties]
