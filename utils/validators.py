from marshmallow import EXCLUDE, Schema, fields, validate, validates_schema, ValidationError, pre_load
from typing import Dict, Any

from config import Config
from services.decision.categories import CATEGORY_KEYS


def _score_field():
    return fields.Float(
        load_default=Config.DEFAULT_CATEGORY_SCORE,
        validate=validate.Range(min=Config.SCORE_SCALE_MIN, max=Config.SCORE_SCALE_MAX)
    )


CategoryScoresSchema = Schema.from_dict(
    {key: _score_field() for key in CATEGORY_KEYS},
    name='CategoryScoresSchema'
)


class PropertyCreateSchema(Schema):
    """Schema for validating the property intake form"""

    class Meta:
        unknown = EXCLUDE

    address = fields.Str(required=True, validate=validate.Length(min=1, max=500))
    listing_url = fields.Str(load_default='', data_key='listingUrl', validate=validate.Length(max=2000))
    price = fields.Float(required=True, validate=validate.Range(min=0))
    beds = fields.Float(required=True, validate=validate.Range(min=0))
    baths = fields.Float(required=True, validate=validate.Range(min=0))
    sq_ft = fields.Float(required=True, data_key='sqFt', validate=validate.Range(min=0))
    notes = fields.Str(load_default='')
    image_base64 = fields.Str(load_default='', data_key='imageBase64')
    scores = fields.Nested(CategoryScoresSchema, load_default=dict)

    @pre_load
    def strip_address(self, data, **kwargs):
        if isinstance(data, dict) and isinstance(data.get('address'), str):
            data = dict(data)
            data['address'] = data['address'].strip()
        return data

    @validates_schema
    def validate_listing_url(self, data, **kwargs):
        url = (data.get('listing_url') or '').strip()
        if url and not url.startswith(('http://', 'https://')):
            raise ValidationError('Listing URL must start with http:// or https://', 'listingUrl')


WeightsSchema = Schema.from_dict(
    {key: fields.Float(load_default=0.0, validate=validate.Range(min=0)) for key in CATEGORY_KEYS},
    name='WeightsSchema'
)


def validate_property_create(data: Dict[str, Any]) -> Dict[str, Any]:
    """Validate intake data, filling omitted category scores with the default"""
    schema = PropertyCreateSchema()
    try:
        result = schema.load(data or {})
    except ValidationError as err:
        raise ValueError(f"Invalid property data: {err.messages}")

    scores = {key: Config.DEFAULT_CATEGORY_SCORE for key in CATEGORY_KEYS}
    scores.update(result.get('scores') or {})
    result['scores'] = scores
    return dict(result)


def validate_weights(data: Dict[str, Any]) -> Dict[str, float]:
    """Validate a raw weight update; missing categories become 0 (excluded)"""
    schema = WeightsSchema()
    try:
        result = schema.load(data or {})
        return dict(result)
    except ValidationError as err:
        raise ValueError(f"Invalid weights: {err.messages}")
