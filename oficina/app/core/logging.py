from __future__ import annotations

import logging

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# attributs posés par logging lui-même : tout le reste vient de `extra=`
_RECORD_ATTRS = frozenset(vars(logging.makeLogRecord({}))) | {"message", "asctime", "taskName"}


class ContextFormatter(logging.Formatter):
    """
    Format texte classique, suivi du contexte passé en `extra=`
    sous forme `clé=valeur`, dans l'ordre d'insertion.

        2024-05-02 10:00:00 - oficina.services.inventory - INFO - stock.saida product_id=3 qty=2.0
    """

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        context = " ".join(
            f"{key}={value}"
            for key, value in vars(record).items()
            if key not in _RECORD_ATTRS and not key.startswith("_")
        )
        if not context:
            return line
        # la trace d'exception reste en fin de bloc
        head, sep, tail = line.partition("\n")
        return f"{head} {context}{sep}{tail}"


def configure_logging(level: str = "INFO") -> None:
    """
    Un seul handler console pour le package `oficina`.
    Appelé une fois au démarrage de l'app (idempotent).
    """
    logger = logging.getLogger("oficina")
    logger.setLevel(level)

    if any(getattr(h, "_oficina_handler", False) for h in logger.handlers):
        return

    handler = logging.StreamHandler()
    handler.setFormatter(ContextFormatter(LOG_FORMAT, DATE_FORMAT))
    handler._oficina_handler = True  # type: ignore[attr-defined]
    logger.addHandler(handler)
