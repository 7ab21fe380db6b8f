import logging

import structlog

from config.settings import mask_sensitive_data


class TestStructlogPipeline:
    def test_masking_processor_is_configured(self):
        processors = structlog.get_config()["processors"]
        assert mask_sensitive_data in processors

    def test_domain_logs_reach_stdlib_logging(self, make_order, caplog):
        with caplog.at_level(logging.INFO):
            order = make_order()
        messages = [record.getMessage() for record in caplog.records]
        assert any("order.created" in message and order.order_number in message for message in messages)

    def test_customer_phone_is_masked_in_records(self, caplog):
        logger = structlog.get_logger("tests.masking")
        with caplog.at_level(logging.INFO):
            logger.info("customer.contacted", note="called 555-010-2000")
        messages = " ".join(record.getMessage() for record in caplog.records)
        assert "customer.contacted" in messages
        assert "555-010-2000" not in messages
