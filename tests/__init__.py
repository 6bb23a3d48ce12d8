"""
Test package for Home Decision Lab.
"""

import os
import sys
import logging
from pathlib import Path

# Add the project root to Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

# Set up test logging
logging.basicConfig(
    level=logging.WARNING,  # Reduce noise in tests
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)

# Test configuration
TEST_DATABASE_URL = "sqlite:///:memory:"
TEST_USER_ID = "user-123"

def setup_test_environment():
    """Set up test environment variables"""
    os.environ.update({
        'DATABASE_URL': TEST_DATABASE_URL,
        'SECRET_KEY': 'test-secret-key',
        'SESSION_SECRET': 'test-session-secret'
    })
    os.environ.pop('REMOTE_SYNC_URL', None)
    os.environ.pop('REMOTE_SYNC_API_KEY', None)


def make_scores(default=5, **overrides):
    """Full category scores mapping with optional per-category overrides"""
    from services.decision.categories import CATEGORY_KEYS

    scores = {key: default for key in CATEGORY_KEYS}
    scores.update(overrides)
    return scores


def make_property(property_id, scores=None, address=None, **fields):
    """PropertyRecord with its structural score computed from the scores"""
    from utils.property_data import PropertyRecord

    scores = scores or make_scores()
    structural = fields.pop('structural_score', None)
    if structural is None:
        structural = sum(scores.values()) / len(scores)
    return PropertyRecord(
        id=property_id,
        address=address or f"{property_id} Main St",
        scores=scores,
        structural_score=structural,
        **fields
    )
