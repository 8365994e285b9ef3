import logging
import random

from chip8 import config
from chip8.errors import LoadError, StackFault


logger = logging.getLogger(__name__)


# ******************** STATIC SECTION
C8_FONTS = [0xF0, 0x90, 0x90, 0x90, 0xF0,  # 0
            0x20, 0x60, 0x20, 0x20, 0x70,  # 1
            0xF0, 0x10, 0xF0, 0x80, 0xF0,  # 2
            0xF0, 0x10, 0xF0, 0x10, 0xF0,  # 3
            0x90, 0x90, 0xF0, 0x10, 0x10,  # 4
            0xF0, 0x80, 0xF0, 0x10, 0xF0,  # 5
            0xF0, 0x80, 0xF0, 0x90, 0xF0,  # 6
            0xF0, 0x10, 0x20, 0x40, 0x40,  # 7
            0xF0, 0x90, 0xF0, 0x90, 0xF0,  # 8
            0xF0, 0x90, 0xF0, 0x10, 0xF0,  # 9
            0xF0, 0x90, 0xF0, 0x90, 0x90,  # A
            0xE0, 0x90, 0xE0, 0x90, 0xE0,  # B
            0xF0, 0x80, 0x80, 0x80, 0xF0,  # C
            0xE0, 0x90, 0x90, 0x90, 0xE0,  # D
            0xF0, 0x80, 0xF0, 0x80, 0xF0,  # E
            0xF0, 0x80, 0xF0, 0x80, 0x80]  # F

FONT_GLYPH_SIZE = 5
PIXEL_SET = 0xFFFFFFFF
PIXEL_CLEAR = 0x00000000


# ******************** MEMORY SECTION
# ********** WRAPS A BYTEARRAY TO REPRESENT THE MAIN MEMORY, ADDRESSES WRAP AROUND AT 4KB
class Memory:
    def __init__(self, size=config.MEMORY_SIZE):
        self.size = size
        self.inner = bytearray(size)
        self.inner[config.FONT_BASE:config.FONT_BASE+len(C8_FONTS)] = bytes(C8_FONTS)

    def __len__(self):
        return self.size

    def __getitem__(self, address):
        return self.inner[address % self.size]

    def __setitem__(self, address, value):
        self.inner[address % self.size] = value & 0xFF

    def read_block(self, address, length):
        """return `length` bytes starting at address, wrapping past the top of memory"""
        return [self.inner[(address + i) % self.size] for i in range(length)]

    def write_block(self, address, values):
        for i, value in enumerate(values):
            self.inner[(address + i) % self.size] = value & 0xFF

    def load_bytes(self, data, offset=config.ROM_START_ADDRESS):
        """copy a program image into memory, it must fit between offset and the end of memory"""
        if len(data) > self.size - offset:
            raise ValueError(f"{len(data)} bytes do not fit at 0x{offset:03x}, at most {self.size - offset} allowed")
        self.inner[offset:offset+len(data)] = data


# ********** WRAPS A LIST TO REPRESENT A STACK WITH A LIMITED SIZE OF 16 ADDRESSES
class Stack:
    def __init__(self, capacity=config.STACK_SIZE):
        self.capacity = capacity
        self.addr_list = [0] * capacity
        self.sp = 0         # next free slot

    def __len__(self):
        return self.sp

    def __str__(self):
        return str([f"0x{addr:03x}" for addr in self.addr_list[:self.sp]])

    def push(self, address, pc=0):
        if self.sp >= self.capacity:
            raise StackFault(pc, f"more than {self.capacity} nested calls")
        self.addr_list[self.sp] = address & 0xFFFF
        self.sp += 1

    def pop(self, pc=0):
        if self.sp == 0:
            raise StackFault(pc, "return with an empty stack")
        self.sp -= 1
        return self.addr_list[self.sp]


# ******************** I/O STATE SECTION
class Framebuffer:
    """64x32 pixels, each one either PIXEL_SET or PIXEL_CLEAR"""

    def __init__(self, w=config.SCREEN_WIDTH, h=config.SCREEN_HEIGHT):
        self.w, self.h = w, h
        self.buffer = [PIXEL_CLEAR] * w * h

    def __getitem__(self, xy):
        x, y = xy
        return self.buffer[y * self.w + x]

    def is_set(self, x, y):
        return self.buffer[y * self.w + x] == PIXEL_SET

    def toggle(self, x, y):
        """XOR the pixel, return True if it was set before (a collision)"""
        i = y * self.w + x
        was_set = self.buffer[i] == PIXEL_SET
        self.buffer[i] ^= PIXEL_SET
        return was_set

    def clear(self):
        self.buffer = [PIXEL_CLEAR] * self.w * self.h

    def rows(self):
        """yield each row as a list of 0/1 values, handy for renderers"""
        for y in range(self.h):
            yield [1 if p == PIXEL_SET else 0 for p in self.buffer[y * self.w:(y + 1) * self.w]]


class Keypad:
    """16 boolean keys, written by the input source and read by the key instructions"""

    def __init__(self):
        self.pressed_keys = [False] * config.KEY_COUNT

    def __getitem__(self, key):
        return self.pressed_keys[key & 0xF]

    def __setitem__(self, key, value):
        self.pressed_keys[key & 0xF] = bool(value)

    def untouched(self):
        return not any(self.pressed_keys)

    def first(self):
        """lowest pressed key, None when nothing is pressed"""
        for key, pressed in enumerate(self.pressed_keys):
            if pressed:
                return key
        return None

    def release_all(self):
        self.pressed_keys = [False] * config.KEY_COUNT


class RandomByteSource:
    """uniform bytes from one generator seeded once, at construction"""

    def __init__(self, seed=None):
        self.seed = seed
        self._rng = random.Random(seed)

    def __call__(self):
        return self._rng.randint(0, 255)


# ******************** MACHINE STATE SECTION
class Machine:
    """the whole CHIP-8 register file, memory, stack, timers, keypad and framebuffer"""

    def __init__(self):
        self.mem = Memory()
        self.video = Framebuffer()
        self.keypad = Keypad()
        self.reset()

    def reset(self):
        """back to power-on state, program memory is left as it is"""
        self.v_regs = [0] * config.REGISTER_COUNT
        self.pc = config.ROM_START_ADDRESS
        self.idx = 0        # index register, points at sprites and memory blocks
        self.dt = 0         # delay timer, active when non-zero
        self.st = 0         # sound timer, active when non-zero
        self.opcode = 0
        self.stack = Stack()
        self.video.clear()
        self.keypad.release_all()

    def __str__(self):
        registers = " ".join(f"V{i:X}:{v:02x}" for i, v in enumerate(self.v_regs))
        return (f"PC_REGISTER:0x{self.pc:04x} | IDX_REGISTER:0x{self.idx:04x} | OPCODE:0x{self.opcode:04x}\n"
                f"VARIABLE_REGISTERS:{registers}\n"
                f"STACK:{self.stack} | DT:{self.dt} | ST:{self.st}")

    def load_bytes(self, data):
        try:
            self.mem.load_bytes(bytes(data))
        except ValueError as err:
            raise LoadError("<bytes>", str(err)) from err

    def load_rom(self, path):
        """load ROM file from path at 0x200, raise LoadError if it can't be read or doesn't fit"""
        try:
            with open(path, mode='rb') as f:
                rom = f.read()
        except OSError as err:
            raise LoadError(path, err.strerror or str(err)) from err
        if len(rom) > config.MAX_ROM_SIZE:
            raise LoadError(path, f"{len(rom)} bytes is larger than the {config.MAX_ROM_SIZE} bytes of program memory")
        self.mem.load_bytes(rom)
        logger.info("The ROM at path %s has been loaded successfully (%d bytes)", path, len(rom))
        return len(rom)
