import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.background import BackgroundScheduler
from flask import has_app_context

from app import db
from config import Config
from models import SyncHistory
from services.decision.categories import CategoryIntegrityError
from services.decision.weight_manager import WeightManager
from services.remote_sync_client import RemoteSyncClient, RemoteSyncError
from services.storage_service import LocalStore
from utils.property_data import normalize_properties, normalize_weight_payload, serialize_properties

logger = logging.getLogger(__name__)

STATUS_LOCAL_ONLY = "Local only"
STATUS_SIGNED_OUT = "Signed out"
STATUS_SYNCING = "Syncing..."
STATUS_SYNCED = "Synced"


class SyncService:
    """Eventually-consistent side channel between the local store and the remote store.

    Pushes are debounced: each edit replaces the user's pending job with a new
    one ``debounce_seconds`` later, and the job reads the latest local state
    when it fires, so only the last scheduled write lands.
    """

    def __init__(self, app, client: Optional[RemoteSyncClient] = None,
                 scheduler: Optional[BackgroundScheduler] = None,
                 debounce_seconds: Optional[float] = None,
                 weight_manager: Optional[WeightManager] = None):
        self.app = app
        self.client = client or RemoteSyncClient()
        self.scheduler = scheduler or BackgroundScheduler()
        self.debounce_seconds = Config.SYNC_DEBOUNCE_SECONDS if debounce_seconds is None else debounce_seconds
        self.weight_manager = weight_manager or WeightManager()
        self._state: Dict[str, Dict[str, Any]] = {}

    @property
    def enabled(self) -> bool:
        return self.client.is_configured

    def start(self) -> None:
        if self.enabled and not self.scheduler.running:
            self.scheduler.start()
            logger.info("Remote sync scheduler started")

    def shutdown(self) -> None:
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)

    def _user_state(self, user_id: str) -> Dict[str, Any]:
        return self._state.setdefault(user_id, {'syncing': False, 'loaded': False, 'message': ''})

    @staticmethod
    def _job_id(user_id: str) -> str:
        return f"remote_sync:{user_id}"

    def status(self, user_id: Optional[str]) -> Dict[str, Any]:
        if not self.enabled:
            return {'status': STATUS_LOCAL_ONLY, 'message': '', 'has_loaded_remote': False}
        if not user_id:
            return {'status': STATUS_SIGNED_OUT, 'message': '', 'has_loaded_remote': False}

        state = self._user_state(user_id)
        return {
            'status': STATUS_SYNCING if state['syncing'] else STATUS_SYNCED,
            'message': state['message'],
            'has_loaded_remote': state['loaded'],
            'pending': self.scheduler.get_job(self._job_id(user_id)) is not None,
        }

    def _local_snapshot(self, store: LocalStore) -> Dict[str, Any]:
        properties = normalize_properties(store.load(Config.PROPERTIES_STORAGE_KEY))
        weights = normalize_weight_payload(store.load(Config.WEIGHTS_STORAGE_KEY), self.weight_manager)
        return {'properties': serialize_properties(properties), 'weights': weights}

    def _record(self, user_id: str, direction: str, started_at: datetime,
                properties_count: int = 0, error: Optional[str] = None) -> None:
        entry = SyncHistory(
            user_id=user_id,
            direction=direction,
            properties_count=properties_count,
            status='failed' if error else 'completed',
            error_message=error,
            started_at=started_at,
            completed_at=datetime.utcnow()
        )
        try:
            db.session.add(entry)
            db.session.commit()
        except Exception as e:
            logger.error(f"Failed to record sync history: {str(e)}")
            db.session.rollback()

    def pull(self, user_id: str, store: Optional[LocalStore] = None) -> bool:
        """Session-start read. Remote data replaces local; an empty remote is seeded from local."""
        if not self.enabled:
            return False

        store = store or LocalStore()
        state = self._user_state(user_id)
        state['syncing'] = True
        started_at = datetime.utcnow()

        try:
            try:
                remote = self.client.fetch(user_id)
            except RemoteSyncError as e:
                state['message'] = f"Cloud sync error: {str(e)}"
                self._record(user_id, 'pull', started_at, error=str(e))
                return False

            if remote:
                try:
                    properties = normalize_properties(remote.get('properties'))
                except CategoryIntegrityError as e:
                    state['message'] = f"Cloud sync error: {str(e)}"
                    self._record(user_id, 'pull', started_at, error=str(e))
                    return False
                weights = normalize_weight_payload(remote.get('weights'), self.weight_manager)
                with store.transaction():
                    store.save(Config.PROPERTIES_STORAGE_KEY, serialize_properties(properties))
                    store.save(Config.WEIGHTS_STORAGE_KEY, weights)
                self._record(user_id, 'pull', started_at, properties_count=len(properties))
                logger.info(f"Loaded {len(properties)} properties from remote for user {user_id}")
            else:
                # First contact: seed the empty remote store from local state
                try:
                    snapshot = self._local_snapshot(store)
                    self.client.upsert(user_id, {
                        'properties': snapshot['properties'],
                        'weights': snapshot['weights'],
                        'timestamp': datetime.now(timezone.utc).isoformat(),
                    })
                except (RemoteSyncError, CategoryIntegrityError) as e:
                    state['message'] = f"Cloud sync error: {str(e)}"
                    self._record(user_id, 'seed', started_at, error=str(e))
                    return False
                self._record(user_id, 'seed', started_at, properties_count=len(snapshot['properties']))
                logger.info(f"Seeded remote store for user {user_id}")

            state['message'] = "Cloud sync active."
            return True
        finally:
            state['loaded'] = True
            state['syncing'] = False

    def schedule_push(self, user_id: Optional[str]) -> bool:
        """Replace any pending push for the user with one after the quiet period"""
        if not self.enabled or not user_id:
            return False
        if not self._user_state(user_id)['loaded']:
            logger.debug(f"Skipping push for user {user_id}: remote not loaded yet")
            return False

        self.cancel_pending(user_id)
        run_date = datetime.now(timezone.utc) + timedelta(seconds=self.debounce_seconds)
        self.scheduler.add_job(
            self._push_job,
            trigger='date',
            run_date=run_date,
            args=[user_id],
            id=self._job_id(user_id),
            replace_existing=True,
            misfire_grace_time=60
        )
        logger.debug(f"Scheduled remote push for user {user_id} at {run_date.isoformat()}")
        return True

    def cancel_pending(self, user_id: str) -> bool:
        try:
            self.scheduler.remove_job(self._job_id(user_id))
            return True
        except JobLookupError:
            return False

    def flush(self, user_id: str) -> bool:
        """Run the pending push now instead of waiting for the quiet period"""
        if not self.cancel_pending(user_id):
            return False
        return self._push_job(user_id)

    def _push_job(self, user_id: str) -> bool:
        if has_app_context():
            return self.push(user_id)
        with self.app.app_context():
            return self.push(user_id)

    def push(self, user_id: str, store: Optional[LocalStore] = None) -> bool:
        """Upsert the full current local session to the remote store"""
        store = store or LocalStore()
        state = self._user_state(user_id)
        state['syncing'] = True
        started_at = datetime.utcnow()

        try:
            snapshot = self._local_snapshot(store)
            self.client.upsert(user_id, {
                'properties': snapshot['properties'],
                'weights': snapshot['weights'],
                'timestamp': datetime.now(timezone.utc).isoformat(),
            })
        except (RemoteSyncError, CategoryIntegrityError) as e:
            # Local integrity errors surface the same way as remote failures
            state['message'] = f"Cloud sync error: {str(e)}"
            self._record(user_id, 'push', started_at, error=str(e))
            return False
        finally:
            state['syncing'] = False

        self._record(user_id, 'push', started_at, properties_count=len(snapshot['properties']))
        return True

    def history(self, user_id: str, limit: int = 20):
        return (SyncHistory.query
                .filter_by(user_id=user_id)
                .order_by(SyncHistory.started_at.desc(), SyncHistory.id.desc())
                .limit(limit)
                .all())
