# config.py
import logging
import os
from dataclasses import dataclass

from shared import DEFAULT_MINIMUM_OEE, DEFAULT_WORLD_CLASS_OEE

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


@dataclass
class _Settings:
    WORLD_CLASS_TARGET: float = DEFAULT_WORLD_CLASS_OEE
    MINIMUM_ACCEPTABLE: float = DEFAULT_MINIMUM_OEE

    # Top-N reasons written to exports (unplanned only)
    EXPORT_TOP_REASONS: int = 10
    LOG_LEVEL: str = "INFO"

    def __post_init__(self):
        self.WORLD_CLASS_TARGET = float(
            os.getenv("OEE_WORLD_CLASS_TARGET", self.WORLD_CLASS_TARGET)
        )
        self.MINIMUM_ACCEPTABLE = float(
            os.getenv("OEE_MINIMUM_ACCEPTABLE", self.MINIMUM_ACCEPTABLE)
        )
        self.EXPORT_TOP_REASONS = int(
            os.getenv("OEE_EXPORT_TOP_REASONS", self.EXPORT_TOP_REASONS)
        )
        self.LOG_LEVEL = os.getenv("OEE_LOG_LEVEL", self.LOG_LEVEL).upper()

        if self.MINIMUM_ACCEPTABLE > self.WORLD_CLASS_TARGET:
            raise ValueError(
                f"OEE_MINIMUM_ACCEPTABLE ({self.MINIMUM_ACCEPTABLE}) is above "
                f"OEE_WORLD_CLASS_TARGET ({self.WORLD_CLASS_TARGET})"
            )


def configure_logging(level=None):
    """Root logging setup for host entry points. Library modules never call this."""
    logging.basicConfig(
        level=level or SETTINGS.LOG_LEVEL,
        format=LOG_FORMAT,
    )


SETTINGS = _Settings()
