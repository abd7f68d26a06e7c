"""Tests unitarios para la configuración de logging."""

import json
import logging
import sys

from app.core.logging_config import (
    OrderOperationFilter,
    RequestContextFilter,
    StructuredFormatter,
    get_logging_configuration,
    request_id_var,
)


def _record(name="app.services.orders.lifecycle", msg="Order %s confirmed", args=("o-1",), extra=None):
    logger = logging.getLogger(name)
    return logger.makeRecord(name, logging.INFO, __file__, 10, msg, args, None, extra=extra)


class TestStructuredFormatter:
    """Tests del formato JSON."""

    def test_json_entry_with_extra_fields(self):
        """Debe serializar el mensaje y los campos extra."""
        record = _record(extra={"order_id": "o-1", "quantity": 3})

        entry = json.loads(StructuredFormatter().format(record))

        assert entry["message"] == "Order o-1 confirmed"
        assert entry["level"] == "INFO"
        assert entry["logger"] == "app.services.orders.lifecycle"
        assert entry["extra"] == {"order_id": "o-1", "quantity": 3}

    def test_exception_included(self):
        """Debe incluir tipo y mensaje de la excepción."""
        try:
            raise ValueError("bad stock")
        except ValueError:
            record = logging.getLogger("app").makeRecord(
                "app", logging.ERROR, __file__, 1, "failed", (), sys.exc_info()
            )

        entry = json.loads(StructuredFormatter().format(record))

        assert entry["exception"]["type"] == "ValueError"
        assert entry["exception"]["message"] == "bad stock"


class TestFilters:
    """Tests de los filtros de contexto."""

    def test_request_id_from_context(self):
        """Debe copiar el request_id de la request en curso."""
        token = request_id_var.set("abc12345")
        try:
            record = _record()
            RequestContextFilter().filter(record)
        finally:
            request_id_var.reset(token)

        assert record.request_id == "abc12345"

    def test_order_modules_marked(self):
        """Debe marcar los logs del núcleo de pedidos."""
        order_record = _record(name="app.utils.order_lock")
        other_record = _record(name="app.services.catalog.product_service")

        OrderOperationFilter().filter(order_record)
        OrderOperationFilter().filter(other_record)

        assert order_record.operation_type == "order"
        assert not hasattr(other_record, "operation_type")


class TestLoggingConfiguration:
    """Tests de la configuración para dictConfig."""

    def test_console_only_without_log_file(self):
        """Sin LOG_FILE_PATH solo debe configurarse la consola."""
        config = get_logging_configuration()

        assert list(config["handlers"]) == ["console"]
        assert config["root"]["handlers"] == ["console"]
