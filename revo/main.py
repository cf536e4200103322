#!/usr/bin/env python3
"""
revo: parallel cellular evolutionary algorithm runner

Main entry point for running one of the example problems.

Usage:
    revo --config salesman --generations 500
    revo --config social_distance --visualise
    python -m revo.main --config basic --generations 50 --seed 42
"""

import argparse
import json
import logging
import sys
import time
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from .evolutionary.individual import EvoIndividual
from .evolutionary.population import Population
from .problems import get_problem
from .utils.config import Config, ConfigError, load_config
from .utils.logging import EvolutionLogger, GenerationLog, RecordLog, setup_logging
from .utils.visualization import plot_fitness_vs_generation, save_population_image

logger = logging.getLogger(__name__)

DEFAULT_PROBLEM = "basic"
DEFAULT_GENERATIONS = 100
DEFAULT_OUTPUT_DIR = "results"
DEFAULT_LOG_LEVEL = "INFO"


def parse_arguments(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """
    Parse command-line arguments.

    Args:
        argv: Argument list (default: ``sys.argv[1:]``)

    Returns:
        Parsed arguments namespace
    """
    parser = argparse.ArgumentParser(
        description="revo: parallel cellular evolutionary algorithm",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Travelling salesman with the bundled configuration
  revo --config salesman

  # Social distancing, writing a population image every generation
  revo --config social_distance --visualise

  # Reproducible run of the basic problem
  revo --config basic --generations 50 --seed 42 --workers 4
        """
    )

    parser.add_argument(
        "--config", "-c",
        type=str,
        default="default",
        help="Configuration name (basic, salesman, social_distance, packer, free_packer, funtree, default) or path to a YAML file"
    )

    parser.add_argument(
        "--problem", "-p",
        type=str,
        default=None,
        help="Problem to solve (overrides config file setting)"
    )

    parser.add_argument(
        "--generations", "-g",
        type=int,
        default=None,
        help="Number of generations to run (overrides config file setting)"
    )

    parser.add_argument(
        "--seed", "-s",
        type=int,
        default=None,
        help="Base random seed for a reproducible run"
    )

    parser.add_argument(
        "--workers", "-w",
        type=int,
        default=None,
        help="Number of worker threads (default: CPU count, 1 runs inline)"
    )

    parser.add_argument(
        "--output-dir", "-o",
        type=str,
        default=None,
        help=f"Output directory for results (default: {DEFAULT_OUTPUT_DIR})"
    )

    parser.add_argument(
        "--log-level",
        type=str,
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help=f"Logging level (default: {DEFAULT_LOG_LEVEL})"
    )

    visualisation = parser.add_mutually_exclusive_group()
    visualisation.add_argument(
        "--visualise",
        dest="visualise",
        action="store_const",
        const=True,
        default=None,
        help="Write a population diversity image every generation"
    )
    visualisation.add_argument(
        "--no-visualization",
        dest="visualise",
        action="store_const",
        const=False,
        help="Disable all image and plot generation"
    )

    return parser.parse_args(argv)


def apply_overrides(config: Config, args: argparse.Namespace) -> Config:
    """Return ``config`` with the command-line overrides applied."""
    return config.with_overrides(
        problem=args.problem,
        generations=args.generations,
        seed=args.seed,
        workers=args.workers,
        output_dir=args.output_dir,
        visualise=args.visualise,
    )


def setup_output_directories(output_dir: str) -> Dict[str, Path]:
    """
    Create output directory structure for results.

    Args:
        output_dir: Base output directory path

    Returns:
        Dictionary of directory paths
    """
    base_path = Path(output_dir)

    directories = {
        "base": base_path,
        "populations": base_path / "populations",
        "best": base_path / "best",
        "metrics": base_path / "metrics",
        "visualizations": base_path / "visualizations",
        "logs": base_path / "logs"
    }

    for dir_path in directories.values():
        dir_path.mkdir(parents=True, exist_ok=True)

    logger.info(f"Output directories created at: {base_path.absolute()}")

    return directories


def _track_best(
    pop: Population,
    all_best: Optional[EvoIndividual],
    directories: Dict[str, Path],
    evolution_logger: EvolutionLogger,
    draw: bool
) -> Optional[EvoIndividual]:
    """Record the current best individual if it beats the all-time best."""
    best = pop.get_best()
    if all_best is not None and not best.get_fitness() > all_best.get_fitness():
        return all_best

    all_best = best.clone()
    image_path = None
    if draw and hasattr(all_best, "draw"):
        image_path = directories["best"] / f"best_{pop.generation}.png"
        all_best.draw(pop.individual_data, image_path)

    evolution_logger.log_record(RecordLog(
        generation=pop.generation,
        fitness=all_best.get_fitness(),
        image_path=str(image_path) if image_path else None,
    ))
    return all_best


def run_revo(args: argparse.Namespace) -> Optional[Dict[str, Any]]:
    """
    Main execution function for revo.

    Args:
        args: Parsed command-line arguments

    Returns:
        Run summary, or None if the run failed
    """
    # Load configuration
    try:
        config = apply_overrides(load_config(args.config), args)
    except (FileNotFoundError, ConfigError, yaml.YAMLError) as e:
        setup_logging(log_level=args.log_level or DEFAULT_LOG_LEVEL, log_to_file=False)
        logger.error(f"Failed to load configuration: {e}", exc_info=True)
        return None

    output_dir = config.get_str("output_dir", DEFAULT_OUTPUT_DIR)
    logging_config = config.section("logging")
    log_level = args.log_level or logging_config.get_str("level", DEFAULT_LOG_LEVEL)
    log_dir = logging_config.get_str("directory", str(Path(output_dir) / "logs"))
    setup_logging(log_dir=log_dir, log_level=log_level)

    logger.info("=" * 80)
    logger.info("revo: parallel cellular evolutionary algorithm")
    logger.info("=" * 80)

    directories = setup_output_directories(output_dir)
    evolution_logger = EvolutionLogger(log_dir=directories["logs"])
    make_images = args.visualise is not False

    try:
        problem = config.get_str("problem", DEFAULT_PROBLEM)
        generations = config.get_uint("generations", DEFAULT_GENERATIONS)
        individual_cls, data_cls = get_problem(problem)

        logger.info(f"Problem: {problem}, generations: {generations}")

        with Population.from_config(config, individual_cls, data_cls) as pop:
            visualise = pop.config.visualise
            all_best = None

            for _ in range(generations):
                stats = pop.fitness_statistics()
                all_best = _track_best(pop, all_best, directories, evolution_logger, make_images)

                if visualise:
                    save_population_image(
                        pop.visualise(),
                        directories["populations"] / f"pop_{pop.generation}.png"
                    )

                generation = pop.generation
                started = time.perf_counter()
                pop.next_gen()

                evolution_logger.log_generation(GenerationLog(
                    generation=generation,
                    best_fitness=stats['best_fitness'],
                    average_fitness=stats['average_fitness'],
                    worst_fitness=stats['worst_fitness'],
                    elapsed_seconds=time.perf_counter() - started,
                ))

            final_stats = pop.fitness_statistics()
            all_best = _track_best(pop, all_best, directories, evolution_logger, make_images)

            logger.info("Evolution completed successfully!")

            if make_images:
                plot_fitness_vs_generation(
                    evolution_logger.get_generation_history(),
                    directories["visualizations"] / "fitness_vs_generation.png"
                )
                logger.info(f"Visualizations saved to: {directories['visualizations']}")

            summary = save_final_summary(
                pop, all_best, final_stats, evolution_logger, directories["metrics"], problem
            )

        logger.info(f"All results saved to: {directories['base'].absolute()}")

        return summary

    except KeyboardInterrupt:
        logger.warning("Evolution interrupted by user")
        return None

    except Exception as e:
        evolution_logger.log_error(e, context="evolution run")
        return None


def save_final_summary(
    pop: Population,
    all_best: EvoIndividual,
    final_stats: Dict[str, float],
    evolution_logger: EvolutionLogger,
    output_dir: Path,
    problem: str
) -> Dict[str, Any]:
    """
    Save final summary of the run.

    Args:
        pop: Population after the last generation
        all_best: Best individual seen during the run
        final_stats: Fitness statistics of the last generation
        evolution_logger: Logger holding the generation history
        output_dir: Output directory for metrics
        problem: Problem name

    Returns:
        Summary dictionary (as written to ``evolution_summary.json``)
    """
    summary = {
        "timestamp": datetime.now().isoformat(),
        "problem": problem,
        "population": pop.config.to_dict(),
        "final_statistics": {
            "generation": pop.generation,
            **final_stats,
        },
        "best_fitness": all_best.get_fitness(),
        "run": evolution_logger.get_evolution_summary(),
    }

    summary_path = output_dir / "evolution_summary.json"
    with open(summary_path, 'w') as f:
        json.dump(summary, f, indent=2)

    logger.info(f"Final summary saved to: {summary_path}")

    logger.info("=" * 80)
    logger.info("EVOLUTION SUMMARY")
    logger.info("=" * 80)
    logger.info(f"Generations: {pop.generation}")
    logger.info(f"Best Fitness: {summary['best_fitness']:.4f}")
    logger.info(f"Final Average Fitness: {final_stats['average_fitness']:.4f}")
    logger.info(f"New Records: {summary['run']['total_records']}")
    if hasattr(all_best, "report"):
        for line in all_best.report(pop.individual_data).splitlines():
            logger.info(line)
    logger.info("=" * 80)

    return summary


def main(argv: Optional[List[str]] = None):
    """
    Main entry point.
    """
    args = parse_arguments(argv)

    summary = run_revo(args)

    sys.exit(0 if summary is not None else 1)


if __name__ == "__main__":
    main()
