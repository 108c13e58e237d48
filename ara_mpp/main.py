# ara_mpp/main.py
"""
Process entry points.

Every component process takes exactly one argument, its data port (sba):

    ara-mpp 4010            # register bank
    ara-mpp-ledger 4000     # belief ledger on the sink port
    python -m ara_mpp 4010

Runtime settings come from $MPP_CONFIG (YAML) and MPP_* overrides.
"""

from __future__ import annotations

import logging
import sys
from typing import Callable, List, Optional

from .component import Component
from .components import BeliefLedger, RegisterBank
from .config import ConfigError, MppConfig, load_config
from .scheduler import Scheduler

log = logging.getLogger("Ara.Mpp.Main")


def configure_logging(config: MppConfig) -> None:
    handlers: List[logging.Handler] = [logging.StreamHandler()]
    if config.log_file:
        handlers.append(logging.FileHandler(config.log_file))

    logging.basicConfig(
        level=getattr(logging, config.log_level.upper(), logging.INFO),
        format='%(asctime)s | %(name)s | %(levelname)s | %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S',
        handlers=handlers,
    )


def run_main(
    factory: Callable[[], Component],
    argv: Optional[List[str]] = None,
    config: Optional[MppConfig] = None,
) -> int:
    """
    Parse `<sba>`, build the component and run it to completion.

    Returns:
        Process exit status
    """
    argv = sys.argv if argv is None else argv
    prog = argv[0] if argv else "ara-mpp"

    if len(argv) != 2:
        print(f"usage: {prog} <sba>", file=sys.stderr)
        return 1

    try:
        sba = int(argv[1])
    except ValueError:
        print(f"usage: {prog} <sba>", file=sys.stderr)
        return 1

    if config is None:
        try:
            config = load_config()
        except (ConfigError, OSError) as e:
            print(f"Error: {e}", file=sys.stderr)
            return 1
        configure_logging(config)

    scheduler = Scheduler(factory(), sba, config=config)
    try:
        scheduler.run()
    except KeyboardInterrupt:
        log.info("Interrupted")
    finally:
        scheduler.close()

    return 0


def main() -> None:
    sys.exit(run_main(RegisterBank))


def main_ledger() -> None:
    sys.exit(run_main(BeliefLedger))


if __name__ == "__main__":
    main()
