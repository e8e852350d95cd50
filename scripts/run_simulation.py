"""
Run Simulation Script.

Usage:
    python scripts/run_simulation.py simulation.periods=10 simulation.mode=async
"""

import logging

import hydra
from omegaconf import DictConfig

from engine.config import ConfigError
from engine.simulation import run_simulation

logger = logging.getLogger(__name__)


@hydra.main(version_base=None, config_path="../conf", config_name="config")
def main(cfg: DictConfig) -> None:
    log_level = getattr(logging, cfg.log_level.upper())
    logging.getLogger().setLevel(log_level)
    logging.getLogger("engine").setLevel(log_level)
    logging.getLogger("traders").setLevel(log_level)

    if not logging.getLogger().handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(
            logging.Formatter("[%(asctime)s][%(name)s][%(levelname)s] - %(message)s")
        )
        logging.getLogger().addHandler(handler)

    try:
        sim = run_simulation(cfg.simulation)
    except ConfigError as e:
        logger.error(f"Bad configuration: {e}")
        raise SystemExit(2) from e

    try:
        frames = sim.to_dataframes()
    finally:
        sim.close()

    if sim.config.periods_requested is not None:
        logger.warning(
            f"Ran {sim.config.periods} of {sim.config.periods_requested} requested periods"
        )
    logger.info(f"Equilibrium price: {sim.equilibrium_price()}")
    effalloc = frames["effalloc"]
    if len(effalloc):
        logger.info("Allocative efficiency by period:")
        print(effalloc.to_string(index=False))
    if sim.config.log_to_file_system:
        logger.info(f"Logs saved to {sim.config.log_dir}")


if __name__ == "__main__":
    main()
