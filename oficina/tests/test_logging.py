import logging
import sys

from oficina.app.core.logging import DATE_FORMAT, LOG_FORMAT, ContextFormatter, configure_logging


def _record(msg="stock.saida", exc_info=None, **extra):
    logger = logging.getLogger("oficina.services.inventory")
    return logger.makeRecord(logger.name, logging.INFO, __file__, 1, msg, (), exc_info, extra=extra)


def test_extra_context_is_rendered_as_key_value_pairs():
    line = ContextFormatter(LOG_FORMAT, DATE_FORMAT).format(
        _record(product_id=3, qty=2.0, previous_stock=10.0, current_stock=8.0)
    )

    assert " - oficina.services.inventory - INFO - stock.saida " in line
    assert line.endswith("product_id=3 qty=2.0 previous_stock=10.0 current_stock=8.0")


def test_record_without_extra_is_unchanged():
    record = _record()
    plain = logging.Formatter(LOG_FORMAT, DATE_FORMAT).format(record)
    assert ContextFormatter(LOG_FORMAT, DATE_FORMAT).format(record) == plain


def test_context_stays_on_the_first_line_of_a_traceback():
    try:
        raise RuntimeError("boom")
    except RuntimeError:
        record = _record("order.export_failed", exc_info=sys.exc_info(), order_id=7)

    first, *rest = ContextFormatter(LOG_FORMAT, DATE_FORMAT).format(record).splitlines()

    assert first.endswith("order.export_failed order_id=7")
    assert rest[-1] == "RuntimeError: boom"


def test_configure_logging_installs_the_context_formatter_once():
    logger = logging.getLogger("oficina")
    before, level = list(logger.handlers), logger.level
    try:
        configure_logging("DEBUG")
        configure_logging("DEBUG")
        added = [h for h in logger.handlers if h not in before]
        assert len(added) <= 1
        ours = [h for h in logger.handlers if getattr(h, "_oficina_handler", False)]
        assert len(ours) == 1
        assert isinstance(ours[0].formatter, ContextFormatter)
    finally:
        for handler in [h for h in logger.handlers if h not in before]:
            logger.removeHandler(handler)
        logger.setLevel(level)
