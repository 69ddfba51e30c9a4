"""
Callback Validation Schemas
"""

from marshmallow import Schema, fields, validates, ValidationError, INCLUDE


class MPesaCallbackSchema(Schema):
    """M-Pesa STK callback envelope"""

    class Meta:
        unknown = INCLUDE

    Body = fields.Dict(required=True)

    @validates('Body')
    def validate_body(self, value, **kwargs):
        if not isinstance(value.get('stkCallback'), dict):
            raise ValidationError('Missing stkCallback in Body')
