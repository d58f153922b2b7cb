from marshmallow import fields, validates_schema, ValidationError, validate, EXCLUDE

from rental_engine.extensions.ma import ma


PRICING_PERIODS = ["weekly", "monthly"]


class _PrimaryItemMixin:
    """Exactly one of equipment_id / product_template_id, and a sane date range."""

    @validates_schema
    def check_primary_and_dates(self, data, **kwargs):
        equipment_id = data.get("equipment_id")
        product_template_id = data.get("product_template_id")
        if (equipment_id is None) == (product_template_id is None):
            raise ValidationError(
                "Provide exactly one of equipment_id or product_template_id.",
                field_name="equipment_id",
            )

        start = data.get("start_date")
        end = data.get("end_date")
        if start and end and end < start:
            raise ValidationError(
                "end_date must be on or after start_date.",
                field_name="end_date",
            )


class AccessorySelectionSchema(ma.Schema):
    accessory_id = fields.Integer(required=True)
    # Informational only
    selected_color = fields.String(
        required=False,
        load_default=None,
        allow_none=True,
        validate=validate.Length(max=50),
    )


class RentalCreateSchema(_PrimaryItemMixin, ma.Schema):
    """
    Body of POST /api/rentals.
    Prices and deposits are computed by the service from the catalog.
    """

    class Meta:
        unknown = EXCLUDE

    equipment_id = fields.Integer(required=False, load_default=None, allow_none=True)
    product_template_id = fields.Integer(required=False, load_default=None, allow_none=True)
    pricing_period = fields.String(required=True, validate=validate.OneOf(PRICING_PERIODS))
    start_date = fields.Date(required=True)  # ISO 8601, YYYY-MM-DD
    end_date = fields.Date(required=True)
    accessories = fields.List(
        fields.Nested(AccessorySelectionSchema),
        required=False,
        load_default=list,
    )
    notes = fields.String(required=False, load_default=None, allow_none=True)
    # Admins only: book on behalf of another user
    user_id = fields.Integer(required=False, load_default=None, allow_none=True)


class QuoteQuerySchema(_PrimaryItemMixin, ma.Schema):
    """Query string of GET /api/rentals/quote (accessory_id may repeat)."""

    class Meta:
        unknown = EXCLUDE

    equipment_id = fields.Integer(required=False, load_default=None, allow_none=True)
    product_template_id = fields.Integer(required=False, load_default=None, allow_none=True)
    pricing_period = fields.String(required=True, validate=validate.OneOf(PRICING_PERIODS))
    start_date = fields.Date(required=True)
    end_date = fields.Date(required=True)
    accessory_ids = fields.List(fields.Integer(), required=False, load_default=list)
    apply_student_discount = fields.Boolean(required=False, load_default=False)


class CancelRentalSchema(ma.Schema):
    class Meta:
        unknown = EXCLUDE

    reason = fields.String(
        required=False,
        load_default=None,
        allow_none=True,
        validate=validate.Length(max=500),
    )


class ReturnRentalSchema(ma.Schema):
    class Meta:
        unknown = EXCLUDE

    damage_reported = fields.Boolean(required=False, load_default=False)
    notes = fields.String(
        required=False,
        load_default=None,
        allow_none=True,
        validate=validate.Length(max=300),
    )


class AvailabilityQuerySchema(ma.Schema):
    class Meta:
        unknown = EXCLUDE

    resource_type = fields.String(required=True, validate=validate.OneOf(["equipment", "product"]))
    resource_id = fields.Integer(required=True)
    start_date = fields.Date(required=True)
    end_date = fields.Date(required=True)
    exclude_rental_id = fields.Integer(required=False, load_default=None, allow_none=True)

    @validates_schema
    def check_dates(self, data, **kwargs):
        start = data.get("start_date")
        end = data.get("end_date")
        if start and end and end < start:
            raise ValidationError(
                "end_date must be on or after start_date.",
                field_name="end_date",
            )


class AddAccessorySchema(AccessorySelectionSchema):
    class Meta:
        unknown = EXCLUDE


class RescheduleRentalSchema(ma.Schema):
    class Meta:
        unknown = EXCLUDE

    start_date = fields.Date(required=True)
    end_date = fields.Date(required=True)

    @validates_schema
    def check_dates(self, data, **kwargs):
        start = data.get("start_date")
        end = data.get("end_date")
        if start and end and end < start:
            raise ValidationError(
                "end_date must be on or after start_date.",
                field_name="end_date",
            )


class UpdateRentalSchema(ma.Schema):
    class Meta:
        unknown = EXCLUDE

    notes = fields.String(
        required=True,
        allow_none=True,
        validate=validate.Length(max=2000),
    )
