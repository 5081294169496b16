"""
ClassroomEngine - All classroom components wired over one database.
"""

import logging
from pathlib import Path
from typing import Optional

from lessonroom.utils import EngineConfig, PinGenerator, load_config

from .catalog import ContentCatalog
from .database import ClassroomDatabase, Clock
from .progress import ProgressTracker
from .registry import ClassroomRegistry
from .statistics import StatisticsAggregator
from .submissions import SubmissionLedger

logger = logging.getLogger(__name__)


class ClassroomEngine:
    """
    Entry point for a presentation layer.

    Example:
        engine = ClassroomEngine.from_config(load_config())
        room = engine.registry.create_classroom(teacher, "Math101")
    """

    def __init__(
        self,
        config: Optional[EngineConfig] = None,
        clock: Optional[Clock] = None,
        pin_generator: Optional[PinGenerator] = None,
    ):
        """
        Initialize engine.

        Args:
            config: Engine settings (default: EngineConfig())
            clock: Current-time source shared by all components
            pin_generator: Candidate PIN source for the registry
        """
        self.config = config or EngineConfig()
        self.db = ClassroomDatabase(self.config.database_path, clock=clock)
        self.registry = ClassroomRegistry(
            self.db,
            pin_generator=pin_generator,
            pin_max_attempts=self.config.pin_max_attempts,
        )
        self.catalog = ContentCatalog(self.db)
        self.submissions = SubmissionLedger(self.db)
        self.progress = ProgressTracker(
            self.db,
            completion_threshold=self.config.completion_threshold,
        )
        self.statistics = StatisticsAggregator(self.db)
        logger.info(
            f"Classroom engine ready (db={self.config.database_path}, "
            f"threshold={self.config.completion_threshold})"
        )

    @classmethod
    def from_config(cls, config: EngineConfig, **kwargs) -> "ClassroomEngine":
        return cls(config=config, **kwargs)

    @classmethod
    def open(cls, config_path: Optional[Path] = None, **overrides) -> "ClassroomEngine":
        """Load configuration (file, environment, overrides) and build an engine."""
        return cls(config=load_config(config_path, **overrides))

    def close(self):
        self.db.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
