import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import requests

from config import Config

logger = logging.getLogger(__name__)


class RemoteSyncError(Exception):
    """Remote store could not be read or written"""


class RemoteSyncClient:
    """Client for the remote multi-device store (PostgREST-style REST table).

    One row per user: ``{user_id, properties, raw_weights, updated_at}``,
    written with an upsert on ``user_id`` so the last write wins.
    """

    def __init__(self, base_url: Optional[str] = None, api_key: Optional[str] = None,
                 table: Optional[str] = None, timeout: Optional[float] = None):
        self.base_url = (base_url if base_url is not None else Config.REMOTE_SYNC_URL or '').rstrip('/')
        self.api_key = api_key if api_key is not None else Config.REMOTE_SYNC_API_KEY
        self.table = table or Config.REMOTE_SYNC_TABLE
        self.timeout = timeout or Config.REMOTE_SYNC_TIMEOUT
        self.session = requests.Session()

    @property
    def is_configured(self) -> bool:
        return bool(self.base_url and self.api_key)

    @property
    def table_url(self) -> str:
        return f"{self.base_url}/rest/v1/{self.table}"

    def _headers(self) -> Dict[str, str]:
        return {
            'apikey': self.api_key or '',
            'Authorization': f"Bearer {self.api_key}",
            'Content-Type': 'application/json',
        }

    def fetch(self, user_id: str) -> Optional[Dict[str, Any]]:
        """Return ``{properties, weights}`` for the user, or None if no row exists"""
        if not self.is_configured:
            raise RemoteSyncError("Remote sync is not configured")

        params = {
            'user_id': f"eq.{user_id}",
            'select': 'properties,raw_weights',
        }
        try:
            response = self.session.get(self.table_url, params=params,
                                        headers=self._headers(), timeout=self.timeout)
            response.raise_for_status()
            rows = response.json()
        except requests.RequestException as e:
            logger.error(f"Remote fetch failed for user {user_id}: {str(e)}")
            raise RemoteSyncError(str(e)) from e
        except ValueError as e:
            logger.error(f"Remote fetch returned invalid JSON for user {user_id}: {str(e)}")
            raise RemoteSyncError("Invalid response from remote store") from e

        if not rows:
            logger.info(f"No remote data for user {user_id}")
            return None

        row = rows[0] if isinstance(rows, list) else rows
        return {
            'properties': row.get('properties'),
            'weights': row.get('raw_weights'),
        }

    def upsert(self, user_id: str, payload: Dict[str, Any]) -> bool:
        """Write the user's full session, replacing any existing row"""
        if not self.is_configured:
            raise RemoteSyncError("Remote sync is not configured")

        timestamp = payload.get('timestamp') or datetime.now(timezone.utc).isoformat()
        body = {
            'user_id': user_id,
            'properties': payload.get('properties', []),
            'raw_weights': payload.get('weights', {}),
            'updated_at': timestamp,
        }
        headers = self._headers()
        headers['Prefer'] = 'resolution=merge-duplicates'

        try:
            response = self.session.post(self.table_url, params={'on_conflict': 'user_id'},
                                         json=body, headers=headers, timeout=self.timeout)
            response.raise_for_status()
        except requests.RequestException as e:
            logger.error(f"Remote upsert failed for user {user_id}: {str(e)}")
            raise RemoteSyncError(str(e)) from e

        logger.debug(f"Upserted remote session for user {user_id} at {timestamp}")
        return True
