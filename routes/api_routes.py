import logging
from flask import Blueprint, current_app, g, jsonify, request
from services.decision.categories import CategoryIntegrityError, serialize_registry
from services.session_service import DecisionSession
from utils.auth import get_current_user_id, rate_limit, user_required
from utils.validators import validate_property_create, validate_weights

logger = logging.getLogger(__name__)

api_bp = Blueprint('api', __name__)


def _sync_service():
    return current_app.extensions['sync_service']


def get_decision_session() -> DecisionSession:
    """Build the per-request session context from the shared services"""
    return DecisionSession(
        decision_service=current_app.extensions['decision_service'],
        sync_service=_sync_service(),
        user_id=get_current_user_id(),
    )


def _json_body():
    # None for a missing, non-JSON or unparseable body
    return request.get_json(silent=True)


@api_bp.errorhandler(CategoryIntegrityError)
def handle_integrity_error(e):
    logger.error(f"Category integrity error: {str(e)}")
    return jsonify({
        "success": False,
        "error": f"Stored data does not match the category registry: {str(e)}"
    }), 500


@api_bp.route('/healthz')
def health_check():
    """API health check"""
    return jsonify({"ok": True})


@api_bp.route('/categories')
def get_categories():
    """Get the fixed category registry grouped for display"""
    return jsonify({
        "success": True,
        "groups": serialize_registry()
    })


@api_bp.route('/properties')
def get_properties():
    """Get the property collection in insertion order"""
    session = get_decision_session()
    properties = session.property_summaries()

    return jsonify({
        "success": True,
        "count": len(properties),
        "properties": properties
    })


@api_bp.route('/properties', methods=['POST'])
def add_property():
    """Add a property from the intake form"""
    data = _json_body()
    if not isinstance(data, dict):
        return jsonify({
            "success": False,
            "error": "Invalid JSON payload"
        }), 400

    try:
        validated = validate_property_create(data)
    except ValueError as e:
        return jsonify({
            "success": False,
            "error": str(e)
        }), 400

    try:
        record = get_decision_session().add_property(validated)
    except CategoryIntegrityError:
        raise
    except Exception as e:
        logger.error(f"Failed to add property: {str(e)}")
        return jsonify({
            "success": False,
            "error": str(e)
        }), 500

    return jsonify({
        "success": True,
        "property": record.to_dict()
    }), 201


@api_bp.route('/properties/<property_id>', methods=['DELETE'])
def delete_property(property_id):
    """Delete one property by id"""
    try:
        deleted = get_decision_session().delete_property(property_id)
    except CategoryIntegrityError:
        raise
    except Exception as e:
        logger.error(f"Failed to delete property {property_id}: {str(e)}")
        return jsonify({
            "success": False,
            "error": str(e)
        }), 500

    if not deleted:
        return jsonify({
            "success": False,
            "error": "Property not found"
        }), 404

    return jsonify({
        "success": True,
        "message": f"Property {property_id} deleted"
    })


@api_bp.route('/weights')
def get_weights():
    """Get raw, normalized and percentage weights"""
    return jsonify({
        "success": True,
        "weights": get_decision_session().weights_view()
    })


@api_bp.route('/weights', methods=['PUT'])
def update_weights():
    """Replace the raw importance weights"""
    data = _json_body()
    if not isinstance(data, dict) or 'weights' not in data:
        return jsonify({
            "success": False,
            "error": "Missing weights data"
        }), 400

    try:
        weights = validate_weights(data['weights'])
    except ValueError as e:
        return jsonify({
            "success": False,
            "error": str(e)
        }), 400

    session = get_decision_session()
    try:
        session.set_raw_weights(weights)
    except Exception as e:
        logger.error(f"Failed to update weights: {str(e)}")
        return jsonify({
            "success": False,
            "error": str(e)
        }), 500

    return jsonify({
        "success": True,
        "weights": session.weights_view()
    })


@api_bp.route('/weights/presets')
def get_weight_presets():
    """List the available weight presets"""
    weight_manager = current_app.extensions['decision_service'].weight_manager
    return jsonify({
        "success": True,
        "presets": {name: weight_manager.get_preset(name) for name in weight_manager.preset_names()}
    })


@api_bp.route('/weights/presets/<name>', methods=['POST'])
def apply_weight_preset(name):
    """Replace the raw weights with a preset"""
    session = get_decision_session()
    try:
        session.apply_preset(name)
    except ValueError as e:
        return jsonify({
            "success": False,
            "error": str(e)
        }), 404

    return jsonify({
        "success": True,
        "preset": name,
        "weights": session.weights_view()
    })


@api_bp.route('/insights')
def get_insights():
    """Weighted ranking and comparative insights under the current weights"""
    session = get_decision_session()
    insights = session.insights()

    return jsonify({
        "success": True,
        "insights": insights.to_dict()
    })


@api_bp.route('/sync/status')
def sync_status():
    """Get remote sync status for the current user"""
    return jsonify({
        "success": True,
        **_sync_service().status(get_current_user_id())
    })


@api_bp.route('/sync/pull', methods=['POST'])
@user_required
@rate_limit(max_requests=10, window_seconds=60)
def sync_pull():
    """Session-start pull from the remote store (seeds it when empty)"""
    sync_service = _sync_service()
    if not sync_service.enabled:
        return jsonify({
            "success": False,
            "error": "Remote sync is not configured"
        }), 400

    ok = sync_service.pull(g.user_id)
    status = sync_service.status(g.user_id)
    return jsonify({
        "success": ok,
        **status
    }), 200 if ok else 502


@api_bp.route('/sync/history')
@user_required
def sync_history():
    """Recent sync attempts for the current user"""
    limit = request.args.get('limit', 20, type=int)
    entries = _sync_service().history(g.user_id, limit=max(1, min(limit, 100)))

    return jsonify({
        "success": True,
        "history": [entry.to_dict() for entry in entries]
    })
