from chip8.cpu import Chip8
from chip8.errors import Chip8Error, LoadError, StackFault
from chip8.machine import Machine, RandomByteSource

__all__ = ["Chip8", "Chip8Error", "LoadError", "Machine", "RandomByteSource", "StackFault"]
