import logging
import uuid
from typing import Any, Dict, List, Optional

from config import Config
from services.decision.decision_service import DecisionService
from services.decision.insight_analyzer import Insights
from services.storage_service import LocalStore
from utils.property_data import PropertyRecord, normalize_properties, normalize_weight_payload, serialize_properties

logger = logging.getLogger(__name__)


class DecisionSession:
    """One user's decision session: the property collection plus the active raw weights.

    Every mutating operation writes through to the local store before
    returning, then asks the sync service (if any) to schedule a push.
    """

    def __init__(self, store: Optional[LocalStore] = None,
                 decision_service: Optional[DecisionService] = None,
                 sync_service=None, user_id: Optional[str] = None):
        self.store = store or LocalStore()
        self.decision_service = decision_service or DecisionService()
        self.sync_service = sync_service
        self.user_id = user_id

    @property
    def weight_manager(self):
        return self.decision_service.weight_manager

    def properties(self) -> List[PropertyRecord]:
        return normalize_properties(self.store.load(Config.PROPERTIES_STORAGE_KEY))

    def raw_weights(self) -> Dict[str, float]:
        return normalize_weight_payload(self.store.load(Config.WEIGHTS_STORAGE_KEY), self.weight_manager)

    def normalized_weights(self) -> Dict[str, float]:
        return self.decision_service.normalize(self.raw_weights())

    def _changed(self) -> None:
        if self.sync_service is not None:
            self.sync_service.schedule_push(self.user_id)

    def add_property(self, data: Dict[str, Any]) -> PropertyRecord:
        """Create a property from validated intake data; structural score is computed once here"""
        scores = {key: float(value) for key, value in data['scores'].items()}
        record = PropertyRecord(
            id=str(uuid.uuid4()),
            address=data['address'].strip(),
            listing_url=(data.get('listing_url') or '').strip(),
            price=float(data.get('price') or 0),
            beds=float(data.get('beds') or 0),
            baths=float(data.get('baths') or 0),
            sq_ft=float(data.get('sq_ft') or 0),
            notes=(data.get('notes') or '').strip(),
            image_base64=data.get('image_base64') or '',
            scores=scores,
            structural_score=self.decision_service.score_calculator.structural_score(scores),
        )

        with self.store.transaction():
            properties = self.properties()
            properties.append(record)
            self.store.save(Config.PROPERTIES_STORAGE_KEY, serialize_properties(properties))

        logger.info(f"Added property {record.id}: {record.address[:50]}")
        self._changed()
        return record

    def delete_property(self, property_id: str) -> bool:
        """Remove exactly one property by id, keeping the order of the rest"""
        with self.store.transaction():
            properties = self.properties()
            remaining = [p for p in properties if p.id != property_id]
            if len(remaining) == len(properties):
                return False
            self.store.save(Config.PROPERTIES_STORAGE_KEY, serialize_properties(remaining))

        logger.info(f"Deleted property {property_id}")
        self._changed()
        return True

    def set_raw_weights(self, raw_weights: Dict[str, Any]) -> Dict[str, float]:
        """Replace the active raw weights; stored verbatim after sanitizing"""
        sanitized = self.weight_manager.sanitize(raw_weights)
        with self.store.transaction():
            self.store.save(Config.WEIGHTS_STORAGE_KEY, sanitized)

        logger.info(f"Updated raw weights: {sanitized}")
        self._changed()
        return sanitized

    def apply_preset(self, name: str) -> Dict[str, float]:
        return self.set_raw_weights(self.weight_manager.get_preset(name))

    def insights(self) -> Insights:
        return self.decision_service.analyze(self.properties(), self.normalized_weights())

    def property_summaries(self) -> List[Dict[str, Any]]:
        normalized = self.normalized_weights()
        return [self.decision_service.summarize_property(p, normalized) for p in self.properties()]

    def weights_view(self) -> Dict[str, Any]:
        raw = self.raw_weights()
        normalized = self.decision_service.normalize(raw)
        return {
            'raw': raw,
            'normalized': normalized,
            'percentages': self.weight_manager.to_percentages(normalized),
            'excluded': self.weight_manager.excluded_categories(raw),
        }
