import logging
import sys
from functools import wraps

from chip8 import config


def setup_logging(debug=None):
    """configure the root logger, DEBUG env var switches on the execution trace"""
    if debug is None:
        debug = config.DEBUG
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format="[%(levelname)s] %(name)s: %(message)s",
        stream=sys.stdout,
    )


def trace(logger):
    """decorator logging the address and opcode of every executed instruction"""
    def decorator(fn):
        @wraps(fn)
        def wrapper_fn(self, *args, **kwargs):
            if logger.isEnabledFor(logging.DEBUG):
                # pc was advanced before dispatch, the instruction lives 2 bytes back
                logger.debug("mem_addr: 0x%04x    opcode: 0x%04x    %s",
                             (self.machine.pc - 2) & 0xFFFF, self.machine.opcode, fn.__name__)
            return fn(self, *args, **kwargs)
        return wrapper_fn
    return decorator
