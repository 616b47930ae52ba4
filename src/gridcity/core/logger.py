import logging
import os
from datetime import datetime

from gridcity.config import LOG_DIR, LOG_LEVEL, LOG_TO_STDOUT


class SimLogger:
    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super(SimLogger, cls).__new__(cls)
            cls._instance._setup()
        return cls._instance

    def _setup(self):
        if not os.path.exists(LOG_DIR):
            os.makedirs(LOG_DIR)

        # Simulation Log
        self.sim_logger = logging.getLogger('gridcity_sim')
        self.sim_logger.setLevel(getattr(logging, LOG_LEVEL, logging.INFO))
        if not self.sim_logger.handlers:
            fh = logging.FileHandler(
                os.path.join(LOG_DIR, f'sim_{datetime.now().strftime("%Y%m%d")}.log'))
            fh.setFormatter(logging.Formatter('%(asctime)s [%(levelname)s] %(message)s'))
            self.sim_logger.addHandler(fh)
        self.echo = LOG_TO_STDOUT

    def log_event(self, category: str, message: str):
        if self.echo:
            print(f"[{category}] {message}")
        self.sim_logger.info(f"[{category}] {message}")

    def log_warning(self, category: str, message: str):
        if self.echo:
            print(f"[{category}] WARNING: {message}")
        self.sim_logger.warning(f"[{category}] {message}")

    def log_error(self, category: str, message: str):
        if self.echo:
            print(f"[{category}] ERROR: {message}")
        self.sim_logger.error(f"[{category}] {message}")

    def log_debug(self, category: str, message: str):
        # Per-tick chatter: file only, and only when the level allows it
        self.sim_logger.debug(f"[{category}] {message}")


def get_logger() -> SimLogger:
    return SimLogger()
