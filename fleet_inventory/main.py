import logging
import sys
from pathlib import Path

from .config import load_config
from .runner import Runner


def setup_logging(debug: bool, log_file: Path = None):
    level = logging.DEBUG if debug else logging.INFO
    handlers = [logging.StreamHandler()]
    if log_file is not None:
        try:
            log_file.parent.mkdir(parents=True, exist_ok=True)
            handlers.append(logging.FileHandler(log_file, encoding="utf-8"))
        except OSError as e:
            print(f"WARNING: run log disabled ({log_file}): {e}")
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
        handlers=handlers,
    )
    # pywinrm/requests are noisy at DEBUG
    logging.getLogger("urllib3").setLevel(logging.WARNING)


def main(argv=None):
    try:
        config = load_config(argv)
        runner = Runner(config)
        setup_logging(config.debug, config.out_dir / f"inventory_{runner.timestamp}.log")

        if not config.hosts:
            print("FATAL ERROR: no target hosts (use --hosts, --hosts-file or FLEET_HOSTS)")
            return 1

        runner.execute()
        return 0

    except Exception as e:
        print(f"FATAL ERROR: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
