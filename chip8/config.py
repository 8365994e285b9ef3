import argparse
import os


# ******************** MEMORY LAYOUT
MEMORY_SIZE = 4096
FONT_BASE = 0x050
ROM_START_ADDRESS = 0x200
MAX_ROM_SIZE = MEMORY_SIZE - ROM_START_ADDRESS
STACK_SIZE = 16
REGISTER_COUNT = 16
KEY_COUNT = 16

# ******************** SCREEN
SCREEN_HEIGHT = 32
SCREEN_WIDTH = 64
SCALE = 15
BLUE = (80, 69, 155)
LIGHT_BLUE = (136, 126, 203)

# ******************** TIMING
SPEED = 600         # instructions per second
TIMER_HZ = 60       # delay/sound timer decrements per second
BEEP_FREQUENCY = 440

DEBUG = True if int(os.getenv('DEBUG', 0)) >= 1 else False


def get_args(argv=None):
    """parse the runner's command line, argv defaults to sys.argv[1:]"""
    parser = argparse.ArgumentParser(prog="chip8", description="CHIP-8 interpreter")
    parser.add_argument("-f", "--file", required=True, help="input rom file")
    parser.add_argument("-s", "--speed", type=int, default=SPEED, help="instructions executed per second")
    parser.add_argument("--scale", type=int, default=SCALE, help="size in screen pixels of one CHIP-8 pixel")
    parser.add_argument("--timer-hz", type=int, default=TIMER_HZ, help="delay/sound timer frequency")
    parser.add_argument("--seed", type=int, default=None, help="seed for the random byte source")
    args = parser.parse_args(argv)
    if args.speed <= 0:
        parser.error("--speed must be a positive number of instructions per second")
    if args.scale <= 0:
        parser.error("--scale must be positive")
    if args.timer_hz <= 0:
        parser.error("--timer-hz must be positive")
    return args
