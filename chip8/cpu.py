# CHIP-8 INFO
# https://chip-8.github.io/extensions/#chip-8
# https://chip-8.github.io/links/
#
# COMPATIBILITY QUIRKS TABLE
# https://games.gulrak.net/cadmium/chip8-opcode-table.html#quirk6
#
# MASTERING CHIP-8
# https://github.com/mattmikolay/chip-8/wiki/Mastering-CHIP%E2%80%908

import logging

from chip8 import config
from chip8.log import trace
from chip8.machine import FONT_GLYPH_SIZE, Machine, RandomByteSource


logger = logging.getLogger(__name__)


# ******************** CPU SECTION
class Chip8:
    """
    fetch/decode/execute engine operating on a Machine

    opcodes are dispatched on their top nibble, the 0x0, 0x8, 0xE and 0xF families
    go through a second table keyed on the low nibble (0x0, 0x8, 0xE) or low byte (0xF),
    any slot without an instruction is a no-op
    """

    def __init__(self, machine=None, rng=None, tick_timers_on_cycle=True):
        self.machine = machine if machine is not None else Machine()
        self.random_byte = rng if rng is not None else RandomByteSource()
        # when False an outer clock is expected to call tick_timers() at 60Hz
        self.tick_timers_on_cycle = tick_timers_on_cycle
        self.draw_flag = False
        self.instructions = [self._noop] * 16
        self.instructions[0x0] = self._family
        self.instructions[0x1] = self._jump
        self.instructions[0x2] = self._call_addr
        self.instructions[0x3] = self._skip_if_eq
        self.instructions[0x4] = self._skip_if_not_eq
        self.instructions[0x5] = self._skip_if_eq_regs
        self.instructions[0x6] = self._set_vk
        self.instructions[0x7] = self._add_to_vk
        self.instructions[0x8] = self._family
        self.instructions[0x9] = self._skip_if_not_eq_regs
        self.instructions[0xA] = self._set_idx
        self.instructions[0xB] = self._jump_plus
        self.instructions[0xC] = self._random_byte_and
        self.instructions[0xD] = self._to_screen
        self.instructions[0xE] = self._family
        self.instructions[0xF] = self._family
        # second level, 0x0 and 0xE families are keyed on the low nibble
        self.sys_instructions = {
            0x0: self._clear_screen,
            0xE: self._return,
        }
        self.arithmetic_instructions = {
            0x0: self._set_vx_to_vy,
            0x1: self._set_vx_or_vy,
            0x2: self._set_vx_and_vy,
            0x3: self._set_vx_xor_vy,
            0x4: self._add_vx_vy,
            0x5: self._sub_vx_vy,
            0x6: self._shr,
            0x7: self._subn_vx_vy,
            0xE: self._shl,
        }
        self.keyboard_instructions = {
            0xE: self._skip_if_pressed,
            0x1: self._skip_if_not_pressed,
        }
        # 0xF family is keyed on the whole low byte
        self.misc_instructions = {
            0x07: self._set_vx_dt,
            0x0A: self._wait_keypress,
            0x15: self._set_dt_vx,
            0x18: self._set_st,
            0x1E: self._add_to_idx,
            0x29: self._select_char,
            0x33: self._bcd_repr,
            0x55: self._store_vregs,
            0x65: self._load_vregs,
        }
        self.families = {
            0x0: (0x000F, self.sys_instructions),
            0x8: (0x000F, self.arithmetic_instructions),
            0xE: (0x000F, self.keyboard_instructions),
            0xF: (0x00FF, self.misc_instructions),
        }

    def __str__(self):
        return f"{self.machine}\nDRAW: {self.draw_flag}"

    # ********** SHORTCUTS TO THE MACHINE STATE
    @property
    def v_regs(self):
        return self.machine.v_regs

    @property
    def mem(self):
        return self.machine.mem

    @property
    def video(self):
        return self.machine.video

    @property
    def keypad(self):
        return self.machine.keypad

    # ********** DECODE
    def decode(self, opcode):
        """return the handler for opcode, walking the second level table for the 0/8/E/F families"""
        family = (opcode & 0xF000) >> 12
        if family not in self.families:
            return self.instructions[family]
        # stricter than a low nibble lookup: 0nnn machine code calls such as 0x0120 are no-ops, not CLS
        if family == 0x0 and opcode & 0x0FF0 != 0x00E0:
            return self._noop
        mask, table = self.families[family]
        return table.get(opcode & mask, self._noop)

    def execute(self, opcode):
        """run a single already fetched opcode, the pc must already point past it"""
        self.machine.opcode = opcode
        self.instructions[(opcode & 0xF000) >> 12](opcode)

    # ********** CYCLE DRIVER
    def cycle(self):
        """emulate one machine cycle: fetch opcode, advance pc, execute, update timers"""
        self.draw_flag = False
        m = self.machine
        # fetch (each instruction is two bytes long, big endian)
        m.pc %= config.MEMORY_SIZE
        opcode = self.mem[m.pc] << 8 | self.mem[m.pc + 1]
        self._goto_next_instruction()
        # decode + execute
        self.execute(opcode)
        # delay/sound timers (dt/st)
        if self.tick_timers_on_cycle:
            self.tick_timers()

    def tick_timers(self):
        m = self.machine
        if m.dt > 0:
            m.dt -= 1
        if m.st > 0:
            m.st -= 1

    @property
    def sound_on(self):
        return self.machine.st > 0

    def _goto_next_instruction(self):
        self.machine.pc = (self.machine.pc + 0x2) & 0xFFFF

    def _family(self, opcode):
        """second level dispatch for the 0x0, 0x8, 0xE and 0xF families"""
        self.decode(opcode)(opcode)

    def _noop(self, opcode):
        logger.debug("ignoring unknown opcode 0x%04x", opcode)

    # ********** INSTRUCTIONS
    @trace(logger)
    def _clear_screen(self, opcode):
        self.video.clear()
        self.draw_flag = True

    @trace(logger)
    def _return(self, opcode):
        """return from a subroutine"""
        m = self.machine
        m.pc = m.stack.pop(pc=(m.pc - 2) & 0xFFFF)

    @trace(logger)
    def _jump(self, opcode):
        self.machine.pc = opcode & 0x0FFF

    @trace(logger)
    def _call_addr(self, opcode):
        m = self.machine
        m.stack.push(m.pc, pc=(m.pc - 2) & 0xFFFF)
        m.pc = opcode & 0x0FFF

    @trace(logger)
    def _skip_if_eq(self, opcode):
        x = (opcode & 0x0F00) >> 8
        comparison_value = opcode & 0x00FF
        if self.v_regs[x] == comparison_value:
            self._goto_next_instruction()

    @trace(logger)
    def _skip_if_not_eq(self, opcode):
        x = (opcode & 0x0F00) >> 8
        comparison_value = opcode & 0x00FF
        if self.v_regs[x] != comparison_value:
            self._goto_next_instruction()

    @trace(logger)
    def _skip_if_eq_regs(self, opcode):
        x, y = (opcode & 0x0F00) >> 8, (opcode & 0x00F0) >> 4
        if self.v_regs[x] == self.v_regs[y]:
            self._goto_next_instruction()

    @trace(logger)
    def _skip_if_not_eq_regs(self, opcode):
        x, y = (opcode & 0x0F00) >> 8, (opcode & 0x00F0) >> 4
        if self.v_regs[x] != self.v_regs[y]:
            self._goto_next_instruction()

    @trace(logger)
    def _set_vk(self, opcode):
        """set the value of one of the 16 variable registers, Vx"""
        x, value = (opcode & 0x0F00) >> 8, opcode & 0x00FF
        self.v_regs[x] = value

    @trace(logger)
    def _add_to_vk(self, opcode):
        """add to the value already present in one of the variable registers, VF is untouched"""
        x, value = (opcode & 0x0F00) >> 8, opcode & 0x00FF
        self.v_regs[x] = (self.v_regs[x] + value) & 0xFF

    @trace(logger)
    def _set_vx_to_vy(self, opcode):
        x, y = (opcode & 0x0F00) >> 8, (opcode & 0x00F0) >> 4
        self.v_regs[x] = self.v_regs[y]

    @trace(logger)
    def _set_vx_or_vy(self, opcode):
        x, y = (opcode & 0x0F00) >> 8, (opcode & 0x00F0) >> 4
        self.v_regs[x] |= self.v_regs[y]

    @trace(logger)
    def _set_vx_and_vy(self, opcode):
        x, y = (opcode & 0x0F00) >> 8, (opcode & 0x00F0) >> 4
        self.v_regs[x] &= self.v_regs[y]

    @trace(logger)
    def _set_vx_xor_vy(self, opcode):
        x, y = (opcode & 0x0F00) >> 8, (opcode & 0x00F0) >> 4
        self.v_regs[x] ^= self.v_regs[y]

    # the flag producing instructions below write VF last, so VF holds the flag even for x == 0xF

    @trace(logger)
    def _add_vx_vy(self, opcode):
        """set Vx = Vx + Vy, VF = carry"""
        x, y = (opcode & 0x0F00) >> 8, (opcode & 0x00F0) >> 4
        total = self.v_regs[x] + self.v_regs[y]
        self.v_regs[x] = total & 0xFF   # keep only the lowest 8 bits from the result
        self.v_regs[0xF] = 1 if total > 255 else 0

    @trace(logger)
    def _sub_vx_vy(self, opcode):
        """set Vx = Vx - Vy, VF = 1 when Vx > Vy (no borrow)"""
        x, y = (opcode & 0x0F00) >> 8, (opcode & 0x00F0) >> 4
        no_borrow = 1 if self.v_regs[x] > self.v_regs[y] else 0
        self.v_regs[x] = (self.v_regs[x] - self.v_regs[y]) & 0xFF
        self.v_regs[0xF] = no_borrow

    @trace(logger)
    def _subn_vx_vy(self, opcode):
        """set Vx = Vy - Vx, VF = 1 when Vy > Vx (no borrow)"""
        x, y = (opcode & 0x0F00) >> 8, (opcode & 0x00F0) >> 4
        no_borrow = 1 if self.v_regs[y] > self.v_regs[x] else 0
        self.v_regs[x] = (self.v_regs[y] - self.v_regs[x]) & 0xFF
        self.v_regs[0xF] = no_borrow

    @trace(logger)
    def _shr(self, opcode):
        """set Vx = Vy SHR 1, VF = the bit shifted out"""
        x, y = (opcode & 0x0F00) >> 8, (opcode & 0x00F0) >> 4
        LSB = self.v_regs[y] & 0x1      # compatibility quirk 2, Vy is the source
        self.v_regs[x] = self.v_regs[y] >> 1
        self.v_regs[0xF] = LSB

    @trace(logger)
    def _shl(self, opcode):
        """set Vx = Vy SHL 1, VF = the bit shifted out"""
        x, y = (opcode & 0x0F00) >> 8, (opcode & 0x00F0) >> 4
        MSB = (self.v_regs[y] & 0x80) >> 7     # compatibility quirk 2, Vy is the source
        self.v_regs[x] = (self.v_regs[y] << 1) & 0xFF
        self.v_regs[0xF] = MSB

    @trace(logger)
    def _set_idx(self, opcode):
        self.machine.idx = opcode & 0x0FFF

    @trace(logger)
    def _jump_plus(self, opcode):
        self.machine.pc = (opcode & 0x0FFF) + self.v_regs[0x0]

    @trace(logger)
    def _random_byte_and(self, opcode):
        x, kk = (opcode & 0x0F00) >> 8, opcode & 0x00FF
        self.v_regs[x] = self.random_byte() & kk

    @trace(logger)
    def _to_screen(self, opcode):
        """display n-byte sprite starting at memory location I at (Vx, Vy), set VF = collision"""
        x, y = (opcode & 0x0F00) >> 8, (opcode & 0x00F0) >> 4
        # only the origin wraps, the rest of the sprite is clipped at the edges
        x, y = self.v_regs[x] % self.video.w, self.v_regs[y] % self.video.h
        n_bytes = opcode & 0x000F
        collision = 0
        for i, sprite_byte in enumerate(self.mem.read_block(self.machine.idx, n_bytes)):
            y_coordinate = y + i
            if y_coordinate >= self.video.h:
                break
            for j in range(8):
                x_coordinate = x + j
                if x_coordinate >= self.video.w:
                    break
                if sprite_byte & (0x80 >> j) and self.video.toggle(x_coordinate, y_coordinate):
                    collision = 1
        self.v_regs[0xF] = collision
        self.draw_flag = True

    @trace(logger)
    def _skip_if_pressed(self, opcode):
        """skip the following instruction if the key corresponding to the hex value stored in Vx is pressed"""
        x = (opcode & 0x0F00) >> 8
        if self.keypad[self.v_regs[x]]:
            self._goto_next_instruction()

    @trace(logger)
    def _skip_if_not_pressed(self, opcode):
        """skip the following instruction if the key corresponding to the hex value stored in Vx is NOT pressed"""
        x = (opcode & 0x0F00) >> 8
        if not self.keypad[self.v_regs[x]]:
            self._goto_next_instruction()

    @trace(logger)
    def _set_vx_dt(self, opcode):
        x = (opcode & 0x0F00) >> 8
        self.v_regs[x] = self.machine.dt

    @trace(logger)
    def _wait_keypress(self, opcode):
        """wait for a key press and store its value in Vx"""
        x = (opcode & 0x0F00) >> 8
        key = self.keypad.first()
        if key is None:
            self.machine.pc -= 0x2      # stay on the same instruction until a key is pressed
        else:
            self.v_regs[x] = key

    @trace(logger)
    def _set_dt_vx(self, opcode):
        x = (opcode & 0x0F00) >> 8
        self.machine.dt = self.v_regs[x]

    @trace(logger)
    def _set_st(self, opcode):
        x = (opcode & 0x0F00) >> 8
        self.machine.st = self.v_regs[x]

    @trace(logger)
    def _add_to_idx(self, opcode):
        x = (opcode & 0x0F00) >> 8
        self.machine.idx = (self.machine.idx + self.v_regs[x]) & 0xFFFF

    @trace(logger)
    def _select_char(self, opcode):
        """set I to location of sprite for digit Vx"""
        x = (opcode & 0x0F00) >> 8
        self.machine.idx = config.FONT_BASE + FONT_GLYPH_SIZE * (self.v_regs[x] & 0xF)

    @trace(logger)
    def _bcd_repr(self, opcode):
        """hundreds digit of Vx in memory at I, the tens digit at I+1, the ones digit at I+2"""
        x = (opcode & 0x0F00) >> 8
        value = self.v_regs[x]
        self.mem.write_block(self.machine.idx, [value // 100, value // 10 % 10, value % 10])

    @trace(logger)
    def _store_vregs(self, opcode):
        """store registers V0 through Vx (included) in memory starting at location I"""
        x = (opcode & 0x0F00) >> 8
        self.mem.write_block(self.machine.idx, self.v_regs[:x+1])

    @trace(logger)
    def _load_vregs(self, opcode):
        """read registers V0 through Vx (included) from memory starting at location I"""
        x = (opcode & 0x0F00) >> 8
        self.v_regs[:x+1] = self.mem.read_block(self.machine.idx, x + 1)
