import logging
from typing import Callable, Iterable
from . import hello_world

logger = logging.getLogger(__name__)

# module key -> init(ledger) returning the job keys it registered
MODULES: dict[str, Callable] = {
    hello_world.MODULE_KEY: hello_world.init,
}


def load_modules(ledger, keys: Iterable[str]) -> list[str]:
    """Runs each enabled module's init against the ledger and collects its job keys."""
    job_keys: list[str] = []
    for key in keys:
        init = MODULES.get(key)
        if init is None:
            logger.warning(f"Unknown module '{key}', skipping")
            continue
        registered = init(ledger)
        logger.info(f"Module {key} registered jobs: {', '.join(registered) or '-'}")
        job_keys.extend(registered)
    return job_keys
