"""
Start-up validation of required secrets and of the remote sync settings
"""
import os
import logging
from typing import Dict, List, Tuple

logger = logging.getLogger(__name__)

class SecurityValidator:
    """Secret validation run once by the application factory"""

    REQUIRED_SECRETS = {
        'SESSION_SECRET': 'Flask session security',
        'DATABASE_URL': 'Local database connection'
    }

    # Remote sync needs both; with either missing the app runs local-only
    SYNC_SECRETS = {
        'REMOTE_SYNC_URL': 'Remote multi-device sync endpoint',
        'REMOTE_SYNC_API_KEY': 'Remote multi-device sync API key'
    }

    @classmethod
    def validate_required_secrets(cls) -> Tuple[bool, List[str]]:
        """
        Returns: (is_valid, missing_secrets)
        """
        missing = [
            f"{key} ({description})"
            for key, description in cls.REQUIRED_SECRETS.items()
            if not os.environ.get(key)
        ]
        for entry in missing:
            logger.error(f"Missing required secret: {entry}")

        return not missing, missing

    @classmethod
    def check_sync_settings(cls) -> Dict[str, bool]:
        """
        Availability of each remote sync setting. Warns on a half-configured
        remote and on a plain-http endpoint, since the API key travels in headers.
        """
        availability = {key: bool(os.environ.get(key)) for key in cls.SYNC_SECRETS}

        if any(availability.values()) and not all(availability.values()):
            missing = [key for key, present in availability.items() if not present]
            logger.warning(f"Remote sync partially configured, missing {', '.join(missing)}; running local-only")
        elif not any(availability.values()):
            logger.info("Remote sync not configured; running local-only")

        url = os.environ.get('REMOTE_SYNC_URL', '')
        if url and not url.startswith('https://'):
            logger.warning("REMOTE_SYNC_URL does not use https; the API key is sent in request headers")

        return availability

    @classmethod
    def validate_all_secrets(cls, raise_on_missing_required: bool = True) -> Dict:
        """
        Args:
            raise_on_missing_required: Raise ValueError if required secrets missing
        Returns:
            dict with validation results
        """
        is_valid, missing_required = cls.validate_required_secrets()

        if not is_valid and raise_on_missing_required:
            raise ValueError(f"Missing required secrets: {', '.join(missing_required)}")

        sync_availability = cls.check_sync_settings()

        return {
            'required_valid': is_valid,
            'missing_required': missing_required,
            'sync_availability': sync_availability,
            'sync_enabled': all(sync_availability.values()),
        }
