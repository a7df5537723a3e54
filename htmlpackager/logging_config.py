import logging
import sys


class StageFormatter(logging.Formatter):
    """Formatter that tolerates records without a progress stage attached."""
    def format(self, record):
        if not hasattr(record, "stage"):
            record.stage = "-"
        return super().format(record)


def configure_logging(level: int = logging.INFO) -> None:
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(StageFormatter(
        "%(asctime)s %(levelname)s %(name)s [stage=%(stage)s] - %(message)s"
    ))
    logging.basicConfig(
        level=level,
        handlers=[handler],
    )
