"""Marshmallow schemas for the rates endpoints."""

from __future__ import annotations

from marshmallow import Schema, ValidationError, fields, validates_schema
from marshmallow.validate import Range

from currency_api.services import MAX_AMOUNT
from currency_api.utils.datetime import utc_today
from currency_api.validation import CurrencyCode, ensure_convertible


class LatestRatesQuerySchema(Schema):
    base_currency = CurrencyCode(required=True, data_key="baseCurrency", label="Base currency")


class ConvertQuerySchema(Schema):
    base_currency = CurrencyCode(required=True, data_key="baseCurrency", label="Base currency")
    target_currency = CurrencyCode(required=True, data_key="targetCurrency", label="Target currency")
    amount = fields.Decimal(
        required=True,
        validate=[
            Range(min=0, min_inclusive=False, error="Amount must be greater than zero."),
            Range(max=MAX_AMOUNT, error="Amount must not exceed {max}."),
        ],
    )

    @validates_schema
    def validate_pair(self, data, **kwargs):
        base = data.get("base_currency")
        target = data.get("target_currency")
        errors: dict[str, list[str]] = {}
        for field_name, label, code in (
            ("baseCurrency", "Base currency", base),
            ("targetCurrency", "Target currency", target),
        ):
            if code is None:
                continue
            try:
                ensure_convertible(code, label=label)
            except ValidationError as exc:
                errors.setdefault(field_name, []).extend(exc.messages)
        if base and target and base == target:
            errors.setdefault("_schema", []).append(
                "Base currency and target currency cannot be the same."
            )
        if errors:
            raise ValidationError(errors)


class HistoryQuerySchema(Schema):
    base_currency = CurrencyCode(required=True, data_key="baseCurrency", label="Base currency")
    start = fields.Date(required=True)
    end = fields.Date(required=True)
    page = fields.Integer(
        load_default=1, validate=Range(min=1, error="Page number must be greater than zero.")
    )
    page_size = fields.Integer(
        load_default=10,
        data_key="pageSize",
        validate=Range(min=1, max=100, error="Page size must be between 1 and 100."),
    )

    @validates_schema
    def validate_range(self, data, **kwargs):
        start = data.get("start")
        end = data.get("end")
        today = utc_today()
        errors: dict[str, list[str]] = {}
        if start and start > today:
            errors.setdefault("start", []).append("Start date cannot be in the future.")
        if end and end > today:
            errors.setdefault("end", []).append("End date cannot be in the future.")
        if start and end and start > end:
            errors.setdefault("start", []).append("Start date must be before or same as end date.")
        if errors:
            raise ValidationError(errors)


class LatestRatesResponseSchema(Schema):
    base = fields.String(required=True)
    date = fields.Date(required=True)
    rates = fields.Dict(keys=fields.String(), values=fields.Float(), required=True)


class ConversionResponseSchema(Schema):
    base = fields.String(required=True)
    target = fields.String(required=True)
    amount = fields.Float(required=True)
    converted_amount = fields.Float(required=True, data_key="convertedAmount")
    date = fields.Date(required=True)


class DailyRatesSchema(Schema):
    date = fields.Date(required=True)
    rates = fields.Dict(keys=fields.String(), values=fields.Float(), required=True)


class HistoricalRatesResponseSchema(Schema):
    base = fields.String(required=True)
    start_date = fields.Date(required=True, data_key="startDate")
    end_date = fields.Date(required=True, data_key="endDate")
    page = fields.Integer(required=True)
    page_size = fields.Integer(required=True, data_key="pageSize")
    total_items = fields.Integer(required=True, data_key="totalItems")
    total_pages = fields.Integer(required=True, data_key="totalPages")
    data = fields.List(fields.Nested(DailyRatesSchema), required=True)
