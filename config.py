import os

class Config:
    # Database - Required
    DATABASE_URL = os.environ.get("DATABASE_URL")

    # App settings - Required
    SECRET_KEY = os.environ.get("SECRET_KEY")
    SESSION_SECRET = os.environ.get("SESSION_SECRET")

    # Local key-value storage keys (one for the collection, one for the weights)
    PROPERTIES_STORAGE_KEY = "home-decision-lab-properties"
    WEIGHTS_STORAGE_KEY = "home-decision-lab-weights"

    # Remote multi-device sync (PostgREST-style endpoint, optional)
    REMOTE_SYNC_URL = os.environ.get("REMOTE_SYNC_URL")
    REMOTE_SYNC_API_KEY = os.environ.get("REMOTE_SYNC_API_KEY")
    REMOTE_SYNC_TABLE = os.environ.get("REMOTE_SYNC_TABLE") or "home_decision_lab_data"
    REMOTE_SYNC_TIMEOUT = float(os.environ.get("REMOTE_SYNC_TIMEOUT") or "10")

    # Quiet period before pushing the session to the remote store
    SYNC_DEBOUNCE_SECONDS = float(os.environ.get("SYNC_DEBOUNCE_SECONDS") or "0.5")

    # Optional YAML file with weight presets, falls back to DEFAULT_WEIGHT_PRESETS
    WEIGHT_PRESETS_PATH = os.environ.get("WEIGHT_PRESETS_PATH") or 'weight_presets.yml'

    # Ceiling of the 1-10 category score scale
    SCORE_SCALE_MAX = 10.0
    SCORE_SCALE_MIN = 1.0

    # Default slider position for a category on the intake form
    DEFAULT_CATEGORY_SCORE = 5

    # Added to the flip threshold so the runner-up strictly overtakes instead of tying
    FLIP_EPSILON = 0.01

    # Raw importance presets - normalized on read, so only ratios matter
    DEFAULT_WEIGHT_PRESETS = {
        'balanced': {
            'priceFit': 1,
            'resalePotential': 1,
            'condition': 1,
            'layout': 1,
            'location': 1,
            'schools': 1,
            'commute': 1,
            'emotionalPull': 1
        },
        'budget_first': {
            'priceFit': 5,
            'resalePotential': 4,
            'condition': 2,
            'layout': 2,
            'location': 1.5,
            'schools': 1,
            'commute': 1,
            'emotionalPull': 1
        },
        'lifestyle_first': {
            'priceFit': 1,
            'resalePotential': 1,
            'condition': 1.5,
            'layout': 1.5,
            'location': 4,
            'schools': 3,
            'commute': 3,
            'emotionalPull': 4
        },
        'resale_focused': {
            'priceFit': 2,
            'resalePotential': 5,
            'condition': 4,
            'layout': 1.5,
            'location': 1.5,
            'schools': 1,
            'commute': 1,
            'emotionalPull': 1
        },
        'family_mode': {
            'priceFit': 1.5,
            'resalePotential': 2,
            'condition': 2,
            'layout': 2,
            'location': 3,
            'schools': 5,
            'commute': 4,
            'emotionalPull': 1.5
        }
    }
