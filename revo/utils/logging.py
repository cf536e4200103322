"""
Logging utilities for revo.

This module provides:
- Standard logging setup with file and console handlers
- EvolutionLogger for structured per-generation tracking (JSON lines)
- Record tracking for new best individuals
"""

import logging
import json
from datetime import datetime
from pathlib import Path
from typing import Dict, Any, List, Optional, Union
from dataclasses import dataclass, field, asdict

ROOT_LOGGER_NAME = 'revo'

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
LOG_DATE_FORMAT = '%Y-%m-%d %H:%M:%S'


@dataclass
class GenerationLog:
    """Data class for logging generation-level fitness statistics."""
    generation: int
    best_fitness: float
    average_fitness: float
    worst_fitness: float
    elapsed_seconds: float = 0.0
    timestamp: str = field(default_factory=lambda: datetime.now().isoformat())

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return asdict(self)


@dataclass
class RecordLog:
    """Data class for logging a new best-ever individual."""
    generation: int
    fitness: float
    image_path: Optional[str] = None
    timestamp: str = field(default_factory=lambda: datetime.now().isoformat())

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return asdict(self)


class EvolutionLogger:
    """
    Structured logger for tracking a population run.

    Writes one JSON line per generation to ``generations.jsonl`` and one per new
    record to ``records.jsonl``, and keeps the history in memory for the final summary.
    """

    def __init__(self, log_dir: Union[str, Path], name: str = ROOT_LOGGER_NAME):
        """
        Initialize the evolution logger.

        Args:
            log_dir: Directory to store the JSON line files
            name: Logger used for human-readable summaries
        """
        self.log_dir = Path(log_dir)
        self.log_dir.mkdir(parents=True, exist_ok=True)
        self.logger = logging.getLogger(name)

        self.generation_log_file = self.log_dir / 'generations.jsonl'
        self.record_log_file = self.log_dir / 'records.jsonl'

        self.generation_history: List[GenerationLog] = []
        self.records: List[RecordLog] = []

        self.logger.debug(f"EvolutionLogger initialized at {self.log_dir}")

    def log_generation(self, generation_log: GenerationLog):
        """
        Log fitness statistics of one generation.

        Args:
            generation_log: GenerationLog dataclass instance
        """
        with open(self.generation_log_file, 'a') as f:
            f.write(json.dumps(generation_log.to_dict()) + '\n')

        self.generation_history.append(generation_log)

        self.logger.info(
            f"Generation {generation_log.generation}: "
            f"Best={generation_log.best_fitness:.4f} | "
            f"Avg={generation_log.average_fitness:.4f} | "
            f"Worst={generation_log.worst_fitness:.4f} | "
            f"{generation_log.elapsed_seconds:.3f}s"
        )

    def log_record(self, record_log: RecordLog):
        """
        Log a new best-ever individual.

        Args:
            record_log: RecordLog dataclass instance
        """
        with open(self.record_log_file, 'a') as f:
            f.write(json.dumps(record_log.to_dict()) + '\n')

        self.records.append(record_log)

        self.logger.info(
            f"New record in generation {record_log.generation}: fitness={record_log.fitness:.4f}"
        )

    def log_error(self, error: Exception, context: str = ""):
        """
        Log an error with context.

        Args:
            error: Exception instance
            context: Additional context about where the error occurred
        """
        self.logger.error(f"Error in {context}: {str(error)}", exc_info=True)

    def get_generation_history(self) -> List[Dict[str, Any]]:
        """Return the logged generations as dictionaries, oldest first."""
        return [entry.to_dict() for entry in self.generation_history]

    def get_evolution_summary(self) -> Dict[str, Any]:
        """
        Get a summary of the entire run.

        Returns:
            Dictionary with overall statistics
        """
        best_scores = [entry.best_fitness for entry in self.generation_history]
        return {
            'total_generations': len(self.generation_history),
            'total_records': len(self.records),
            'best_fitness_overall': max(best_scores) if best_scores else None,
            'final_best_fitness': best_scores[-1] if best_scores else None,
            'fitness_improvement': (
                best_scores[-1] - best_scores[0] if len(best_scores) > 1 else 0.0
            ),
            'total_elapsed_seconds': sum(e.elapsed_seconds for e in self.generation_history),
        }


def setup_logging(
    log_dir: Union[str, Path] = "results/logs",
    log_level: Union[str, int] = "INFO",
    log_to_file: bool = True,
    log_to_console: bool = True,
) -> logging.Logger:
    """
    Set up logging for the ``revo`` logger hierarchy.

    Args:
        log_dir: Directory to store log files
        log_level: Logging level as string ('DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL') or int
        log_to_file: Whether to log to ``revo.log`` and ``errors.log``
        log_to_console: Whether to log to the console

    Returns:
        Configured logger instance
    """
    level_map = {
        'DEBUG': logging.DEBUG,
        'INFO': logging.INFO,
        'WARNING': logging.WARNING,
        'ERROR': logging.ERROR,
        'CRITICAL': logging.CRITICAL
    }
    if isinstance(log_level, int):
        log_level_int = log_level
    else:
        log_level_int = level_map.get(str(log_level).upper(), logging.INFO)

    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(log_level_int)

    for handler in list(logger.handlers):
        handler.close()
    logger.handlers = []

    formatter = logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT)

    if log_to_console:
        console_handler = logging.StreamHandler()
        console_handler.setLevel(log_level_int)
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

    if log_to_file:
        log_path = Path(log_dir)
        log_path.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(log_path / 'revo.log', mode='a')
        file_handler.setLevel(log_level_int)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

        # Errors only
        error_handler = logging.FileHandler(log_path / 'errors.log', mode='a')
        error_handler.setLevel(logging.ERROR)
        error_handler.setFormatter(formatter)
        logger.addHandler(error_handler)

    logger.info(f"Logging initialized at level {logging.getLevelName(log_level_int)} to {log_dir}")

    return logger


def get_logger(name: str = ROOT_LOGGER_NAME) -> logging.Logger:
    """
    Get a logger instance by name.

    Args:
        name: Logger name (default: 'revo')

    Returns:
        Logger instance
    """
    return logging.getLogger(name)
