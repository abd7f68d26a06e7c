"""
OrderValidator service for validating order placement requests.

This service follows SRP (Single Responsibility Principle) by focusing only on
validation and normalization of the customer-submitted order fields.
"""

import logging
import re
from dataclasses import dataclass
from typing import Any

from email_validator import EmailNotValidError, validate_email

from app.domain.models.product import MAX_VARIANT_STOCK
from app.domain.value_objects import DeliveryMethod
from app.utils.error_handler import InvalidPhoneException, ValidationException

logger = logging.getLogger(__name__)

PHONE_PATTERN = re.compile(r"^(0[5-7]\d{8}|\+213[5-7]\d{8})$")
PHONE_FORMAT_HINT = "0XXXXXXXXX or +213XXXXXXXXX (mobile prefixes 5, 6, 7)"

# No order can ask for more than a variant can ever hold
MAX_ORDER_QUANTITY = MAX_VARIANT_STOCK

REQUIRED_FIELDS = (
    "product_id",
    "variant_sku",
    "quantity",
    "customer_name",
    "customer_phone",
    "region",
    "delivery_method",
    "address",
)


def normalize_phone(phone: str) -> str:
    """Strip spaces and dashes."""
    return re.sub(r"[\s\-]+", "", phone)


def is_valid_phone(phone: str) -> bool:
    return bool(PHONE_PATTERN.match(normalize_phone(phone)))


@dataclass(frozen=True)
class PlacementRequest:
    """A validated, normalized placement request."""

    product_id: str
    variant_sku: str
    quantity: int
    customer_name: str
    customer_phone: str
    region: str
    delivery_method: DeliveryMethod
    address: str
    customer_email: str = ""
    note: str = ""


class OrderValidator:
    """
    Validates order placement requests.

    Responsibilities:
    - Validate required fields (all missing ones reported at once)
    - Validate quantity and delivery method
    - Validate and normalize phone and email
    """

    def validate(self, payload: dict[str, Any]) -> PlacementRequest:
        """
        Validates a placement payload and returns the normalized request.

        Args:
            payload: Raw request fields

        Returns:
            PlacementRequest: Normalized request

        Raises:
            ValidationException: Missing fields, bad quantity, bad delivery method or bad email
            InvalidPhoneException: Phone does not match the accepted formats
        """
        self._validate_required_fields(payload)
        quantity = self._validate_quantity(payload["quantity"])
        delivery_method = self._validate_delivery_method(payload["delivery_method"])
        phone = self._validate_phone(payload["customer_phone"])
        email = self._validate_email(payload.get("customer_email"))

        request = PlacementRequest(
            product_id=str(payload["product_id"]).strip(),
            variant_sku=str(payload["variant_sku"]).strip(),
            quantity=quantity,
            customer_name=str(payload["customer_name"]).strip(),
            customer_phone=phone,
            region=str(payload["region"]).strip(),
            delivery_method=delivery_method,
            address=str(payload["address"]).strip(),
            customer_email=email,
            note=str(payload.get("note") or "").strip(),
        )
        logger.debug(f"Placement request validated for product {request.product_id}/{request.variant_sku}")
        return request

    def _validate_required_fields(self, payload: dict[str, Any]) -> None:
        missing = []
        for field in REQUIRED_FIELDS:
            value = payload.get(field)
            if value is None or (isinstance(value, str) and not value.strip()):
                missing.append(field)

        if missing:
            raise ValidationException(
                message=f"Missing required fields: {', '.join(missing)}",
                field=missing[0],
                missing_fields=missing,
            )

    def _validate_quantity(self, quantity: Any) -> int:
        if isinstance(quantity, bool) or not isinstance(quantity, int) or not 1 <= quantity <= MAX_ORDER_QUANTITY:
            raise ValidationException(
                message=f"Quantity must be an integer between 1 and {MAX_ORDER_QUANTITY}",
                field="quantity",
                invalid_value=quantity,
                expected_format=f"integer from 1 to {MAX_ORDER_QUANTITY}",
            )
        return quantity

    def _validate_delivery_method(self, method: Any) -> DeliveryMethod:
        try:
            return DeliveryMethod(str(method).strip().lower())
        except ValueError:
            raise ValidationException(
                message=f"Invalid delivery method '{method}'",
                field="delivery_method",
                invalid_value=method,
                expected_format=" | ".join(DeliveryMethod.values()),
            ) from None

    def _validate_phone(self, phone: Any) -> str:
        cleaned = normalize_phone(str(phone))
        if not PHONE_PATTERN.match(cleaned):
            raise InvalidPhoneException(
                message=f"Invalid phone number '{phone}'",
                phone=str(phone),
                expected_format=PHONE_FORMAT_HINT,
            )
        return cleaned

    def _validate_email(self, email: Any) -> str:
        if email is None or not str(email).strip():
            return ""
        try:
            result = validate_email(str(email).strip(), check_deliverability=False)
        except EmailNotValidError as e:
            raise ValidationException(
                message=f"Invalid email address: {e}",
                field="customer_email",
                invalid_value=email,
            ) from e
        return result.normalized.lower()
