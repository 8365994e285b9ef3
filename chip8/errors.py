class Chip8Error(Exception):
    """base class for every error raised by the interpreter"""


class LoadError(Chip8Error):
    """the ROM could not be read or does not fit in program memory"""

    def __init__(self, path, reason):
        self.path = path
        self.reason = reason
        super().__init__(f"Unable to load ROM {path}: {reason}")


class StackFault(Chip8Error):
    """a CALL overflowed the 16-entry stack or a RET found it empty"""

    def __init__(self, pc, reason):
        self.pc = pc
        self.reason = reason
        super().__init__(f"Stack fault at 0x{pc:04x}: {reason}")
