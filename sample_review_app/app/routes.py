from flask import Blueprint, request, jsonify, current_app
from werkzeug.exceptions import HTTPException
from .errors import SampleReviewError, ValidationError
from .reviews import clean_review_fields

api_bp = Blueprint('api', __name__, url_prefix='/api')


def _lifecycle():
    return current_app.extensions['sample_review']['lifecycle']


def _reviews():
    return current_app.extensions['sample_review']['reviews']


def _flag(value):
    return (value or '').strip().lower() in ('1', 'true', 'yes')


@api_bp.errorhandler(SampleReviewError)
def handle_sample_review_error(error):
    if error.status_code >= 500:
        current_app.logger.error(f"{request.method} {request.path} failed: {error.message} ({error.details})")
    else:
        current_app.logger.warning(f"{request.method} {request.path} rejected: {error.message}")
    return jsonify(error.to_dict()), error.status_code

@api_bp.errorhandler(Exception)
def handle_unexpected_error(error):
    if isinstance(error, HTTPException):
        return jsonify({'error': error.description}), error.code
    current_app.logger.error(f"Unexpected error on {request.method} {request.path}: {str(error)}")
    return jsonify({'error': 'An unexpected error occurred', 'details': str(error)}), 500

# --- Sample Endpoints ---

@api_bp.route('/samples', methods=['GET'])
def list_samples():
    samples = _lifecycle().list_active(
        status=request.args.get('status') or None,
        include_deleted=_flag(request.args.get('include_deleted')),
    )
    return jsonify([sample.to_dict() for sample in samples]), 200

@api_bp.route('/samples', methods=['POST'])
def submit_sample():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError('Missing name, time, person or phone in request body')

    sample = _lifecycle().submit(
        name=data.get('name'),
        time=data.get('time'),
        person=data.get('person'),
        phone=data.get('phone'),
    )
    return jsonify(sample.to_dict()), 200

@api_bp.route('/samples/<sample_id>', methods=['GET'])
def get_sample(sample_id):
    return jsonify(_lifecycle().get(sample_id).to_dict()), 200

@api_bp.route('/samples/<record_id>', methods=['DELETE'])
def soft_delete_sample(record_id):
    _lifecycle().soft_delete(record_id)
    return jsonify({'success': True}), 200

@api_bp.route('/samples/<sample_id>/permanent', methods=['DELETE'])
def purge_sample(sample_id):
    _lifecycle().purge(sample_id)
    return jsonify({'success': True}), 200

@api_bp.route('/samples/<record_id>/restore', methods=['PATCH'])
def restore_sample(record_id):
    _lifecycle().restore(record_id)
    return jsonify({'success': True}), 200

@api_bp.route('/samples/<record_id>/status', methods=['PATCH'])
def set_sample_status(record_id):
    data = request.get_json(silent=True) or {}
    _lifecycle().set_status(record_id, data.get('status') if isinstance(data, dict) else None)
    return jsonify({'success': True}), 200

# --- Recycle Bin ---

@api_bp.route('/recycle-bin', methods=['GET'])
def recycle_bin():
    entries = []
    for located in _lifecycle().recycle_bin():
        entry = located.record.to_dict()
        entry['source_table'] = located.source_table
        entries.append(entry)
    return jsonify(entries), 200

# --- Review Endpoints ---

@api_bp.route('/review', methods=['POST'])
def submit_review():
    data = request.get_json(silent=True)
    if not isinstance(data, dict) or not data.get('sample_id'):
        raise ValidationError('Missing sample_id in request body')

    fields = clean_review_fields(data)
    review, created = _reviews().submit(str(data['sample_id']), fields)
    return jsonify({
        'success': True,
        'message': 'Review record created' if created else 'Review record updated',
        'created': created,
        'review': review.to_dict(),
    }), 200

@api_bp.route('/review', methods=['GET'])
def get_review():
    sample_id = request.args.get('sample_id')
    if not sample_id:
        raise ValidationError('Missing sample_id query parameter')

    review = _reviews().get(sample_id)
    return jsonify(review.to_dict() if review else None), 200

@api_bp.route('/review/<review_id>/permanent', methods=['DELETE'])
def purge_review(review_id):
    _lifecycle().purge_review(review_id)
    return jsonify({'success': True}), 200
