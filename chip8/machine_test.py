import os
import tempfile
import unittest

from chip8.errors import LoadError, StackFault
from chip8.machine import (
    C8_FONTS, PIXEL_CLEAR, PIXEL_SET,
    Framebuffer, Keypad, Machine, Memory, RandomByteSource, Stack,
)


class TestMemory(unittest.TestCase):
    def test_fonts_live_at_0x50(self):
        mem = Memory()
        self.assertEqual(mem.read_block(0x050, len(C8_FONTS)), C8_FONTS)
        self.assertEqual(mem.read_block(0x000, 0x50), [0] * 0x50)

    def test_addresses_wrap(self):
        mem = Memory()
        mem[0x1005] = 0x42
        self.assertEqual(mem[0x005], 0x42)
        mem.write_block(0xFFE, [1, 2, 3])
        self.assertEqual(mem.read_block(0xFFE, 3), [1, 2, 3])
        self.assertEqual(mem[0x000], 3)

    def test_values_are_bytes(self):
        mem = Memory()
        mem[0x300] = 0x1FF
        self.assertEqual(mem[0x300], 0xFF)

    def test_program_must_fit(self):
        mem = Memory()
        mem.load_bytes(bytes(3584))
        with self.assertRaises(ValueError):
            mem.load_bytes(bytes(3585))


class TestStack(unittest.TestCase):
    def test_push_pop(self):
        stack = Stack()
        stack.push(0x202)
        stack.push(0x304)
        self.assertEqual(len(stack), 2)
        self.assertEqual(stack.pop(), 0x304)
        self.assertEqual(stack.pop(), 0x202)

    def test_overflow(self):
        stack = Stack()
        for i in range(16):
            stack.push(i)
        with self.assertRaises(StackFault) as ctx:
            stack.push(16, pc=0x2AA)
        self.assertEqual(ctx.exception.pc, 0x2AA)
        self.assertEqual(len(stack), 16)

    def test_underflow(self):
        with self.assertRaises(StackFault):
            Stack().pop()


class TestFramebuffer(unittest.TestCase):
    def test_toggle_reports_collision(self):
        fb = Framebuffer()
        self.assertFalse(fb.toggle(3, 4))
        self.assertEqual(fb[3, 4], PIXEL_SET)
        self.assertTrue(fb.toggle(3, 4))
        self.assertEqual(fb[3, 4], PIXEL_CLEAR)

    def test_rows(self):
        fb = Framebuffer()
        fb.toggle(63, 31)
        rows = list(fb.rows())
        self.assertEqual(len(rows), 32)
        self.assertEqual(rows[31][63], 1)
        self.assertEqual(sum(map(sum, rows)), 1)


class TestKeypad(unittest.TestCase):
    def test_first_is_lowest_pressed(self):
        keypad = Keypad()
        self.assertTrue(keypad.untouched())
        self.assertIsNone(keypad.first())
        keypad[0xC] = True
        keypad[0x2] = True
        self.assertEqual(keypad.first(), 0x2)
        keypad[0x2] = False
        self.assertEqual(keypad.first(), 0xC)

    def test_keys_use_low_nibble(self):
        keypad = Keypad()
        keypad[0x1A] = True
        self.assertTrue(keypad[0xA])


class TestRandomByteSource(unittest.TestCase):
    def test_seeded_sources_agree(self):
        a, b = RandomByteSource(seed=7), RandomByteSource(seed=7)
        values = [a() for _ in range(50)]
        self.assertEqual(values, [b() for _ in range(50)])
        self.assertTrue(all(0 <= v <= 255 for v in values))


class TestMachine(unittest.TestCase):
    def test_initial_state(self):
        m = Machine()
        self.assertEqual(m.pc, 0x200)
        self.assertEqual(m.v_regs, [0] * 16)
        self.assertEqual((m.idx, m.dt, m.st, m.opcode), (0, 0, 0, 0))
        self.assertEqual(len(m.stack), 0)
        self.assertEqual(m.mem[0x050], 0xF0)

    def test_reset_keeps_program(self):
        m = Machine()
        m.load_bytes(b"\x12\x34")
        m.pc, m.idx, m.v_regs[3] = 0x300, 0x123, 9
        m.video.toggle(0, 0)
        m.reset()
        self.assertEqual((m.pc, m.idx, m.v_regs[3]), (0x200, 0, 0))
        self.assertFalse(m.video.is_set(0, 0))
        self.assertEqual(m.mem.read_block(0x200, 2), [0x12, 0x34])

    def test_load_rom(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, "test.ch8")
            with open(path, "wb") as f:
                f.write(b"\x00\xe0\x12\x00")
            m = Machine()
            self.assertEqual(m.load_rom(path), 4)
        self.assertEqual(m.mem.read_block(0x200, 4), [0x00, 0xE0, 0x12, 0x00])

    def test_load_missing_rom(self):
        with self.assertRaises(LoadError) as ctx:
            Machine().load_rom("/nonexistent/rom.ch8")
        self.assertIsInstance(ctx.exception.__cause__, OSError)

    def test_load_oversized_rom(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, "big.ch8")
            with open(path, "wb") as f:
                f.write(bytes(3585))
            with self.assertRaises(LoadError):
                Machine().load_rom(path)

    def test_load_oversized_bytes(self):
        with self.assertRaises(LoadError):
            Machine().load_bytes(bytes(4000))


if __name__ == "__main__":
    unittest.main()
