from marshmallow import Schema, fields, EXCLUDE


class StkPushRequestSchema(Schema):
    """Optional STK push request fields, loaded once the request guard has passed"""

    class Meta:
        unknown = EXCLUDE

    phone_number = fields.Str(data_key='phoneNumber', required=True)
    amount = fields.Float(required=True)
    account_reference = fields.Str(data_key='accountReference', required=False, allow_none=True)
    transaction_desc = fields.Str(data_key='transactionDesc', required=False, allow_none=True)
    customer_email = fields.Email(data_key='customerEmail', required=False, allow_none=True)
    customer_name = fields.Str(data_key='customerName', required=False, allow_none=True)


class TransactionLogSchema(Schema):
    """Audit trail entry"""
    action = fields.Str(dump_only=True)
    details = fields.Dict(dump_only=True)
    timestamp = fields.DateTime(dump_only=True)
