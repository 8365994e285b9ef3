import array
import logging
import os
import sys

os.environ.setdefault("PYGAME_HIDE_SUPPORT_PROMPT", "no welcome message")   # disable pygame's welcome message when imported
import pygame
from pygame.locals import (
    K_0, K_1, K_2, K_3,
    K_4, K_5, K_6, K_7,
    K_8, K_9, K_a, K_b,
    K_c, K_d, K_e, K_f,
)

from chip8 import config
from chip8.cpu import Chip8
from chip8.errors import Chip8Error, LoadError
from chip8.log import setup_logging
from chip8.machine import RandomByteSource


logger = logging.getLogger(__name__)

KEY_MAPPINGS = {
    K_0: 0x0,
    K_1: 0x1,
    K_2: 0x2,
    K_3: 0x3,
    K_4: 0x4,
    K_5: 0x5,
    K_6: 0x6,
    K_7: 0x7,
    K_8: 0x8,
    K_9: 0x9,
    K_a: 0xA,
    K_b: 0xB,
    K_c: 0xC,
    K_d: 0xD,
    K_e: 0xE,
    K_f: 0xF,
}

FPS = 60


# ******************** UTILITIES SECTION
class TimerClock:
    """turns elapsed wall clock milliseconds into a whole number of ticks at a fixed rate"""

    def __init__(self, hz):
        self.period = 1000.0 / hz
        self.elapsed = 0.0

    def advance(self, ms):
        self.elapsed += ms
        ticks = int(self.elapsed // self.period)
        self.elapsed -= ticks * self.period
        return ticks


def handle_event(event, keypad):
    """apply a pygame event to the keypad, return False when the user asked to quit"""
    if event.type == pygame.QUIT:
        return False
    if event.type == pygame.KEYDOWN:
        if event.key == pygame.K_ESCAPE:
            return False
        if event.key in KEY_MAPPINGS:
            keypad[KEY_MAPPINGS[event.key]] = True
    elif event.type == pygame.KEYUP and event.key in KEY_MAPPINGS:
        keypad[KEY_MAPPINGS[event.key]] = False
    return True


# ******************** I/O SECTION
class Screen:
    """presents a Framebuffer on a pygame window"""

    def __init__(self, s=config.SCALE, bg_color=config.BLUE, fg_color=config.LIGHT_BLUE):
        self.w, self.h, self.scale = config.SCREEN_WIDTH, config.SCREEN_HEIGHT, s
        self.background = pygame.Color(*bg_color)
        self.foreground = pygame.Color(*fg_color)
        self.surface = pygame.display.set_mode((self.w * self.scale, self.h * self.scale))
        self.surface.fill(self.background)

    def render(self, framebuffer):
        self.surface.fill(self.background)
        for y, row in enumerate(framebuffer.rows()):
            for x, pixel in enumerate(row):
                if pixel:
                    pygame.draw.rect(
                        self.surface,
                        self.foreground,
                        (x * self.scale, y * self.scale, self.scale, self.scale)
                    )
        pygame.display.flip()


class Beeper:
    """square wave played while the sound timer is running"""

    SAMPLE_RATE = 22050

    def __init__(self, frequency=config.BEEP_FREQUENCY):
        self.playing = False
        self.sound = None
        if not pygame.mixer.get_init():
            try:
                pygame.mixer.init(frequency=self.SAMPLE_RATE, size=-16, channels=1)
            except pygame.error as err:
                logger.warning("No audio device, the sound timer will be silent: %s", err)
                return
        # the mixer may already run in another format (pygame.init() picks its own), follow it
        rate, size, channels = pygame.mixer.get_init()
        if abs(size) != 16:
            logger.warning("Unsupported %d bit audio format, the sound timer will be silent", abs(size))
            return
        half_period = max(1, rate // (frequency * 2))
        wave = ([4096] * half_period + [-4096] * half_period) * (rate // (2 * half_period))  # one second
        samples = array.array('h', [sample for sample in wave for _ in range(channels)])
        self.sound = pygame.mixer.Sound(buffer=samples.tobytes())

    def update(self, sound_on):
        if self.sound is None or sound_on == self.playing:
            return
        if sound_on:
            self.sound.play(loops=-1)
        else:
            self.sound.stop()
        self.playing = sound_on


# ******************** ENTRY POINT SECTION
def run(chip, screen, beeper, speed, timer_hz):
    """emulation loop, instructions at `speed` per second and timers at `timer_hz`"""
    clock = pygame.time.Clock()
    timer_clock = TimerClock(timer_hz)
    cycle_clock = TimerClock(speed)
    running = True
    while running:
        elapsed = clock.tick(FPS)
        # process user input
        for event in pygame.event.get():
            if not handle_event(event, chip.keypad):
                running = False
        redraw = False
        for _ in range(cycle_clock.advance(elapsed)):
            chip.cycle()        # emulate one machine cycle (fetch opcode, decode opcode, execute opcode)
            redraw = redraw or chip.draw_flag
        for _ in range(timer_clock.advance(elapsed)):
            chip.tick_timers()
        beeper.update(chip.sound_on)
        if redraw:
            screen.render(chip.video)


def init_pygame():
    """start pygame with the mixer in the beeper's mono 16 bit format"""
    pygame.mixer.pre_init(Beeper.SAMPLE_RATE, -16, 1)
    pygame.init()


def main(argv=None):
    setup_logging()
    args = config.get_args(argv)
    chip = Chip8(rng=RandomByteSource(args.seed), tick_timers_on_cycle=False)
    try:
        chip.machine.load_rom(args.file)
    except LoadError as err:
        logger.error("%s", err)
        return 1
    # pygame initialization
    init_pygame()
    pygame.display.set_caption(os.path.basename(args.file))
    try:
        run(chip, Screen(args.scale), Beeper(), args.speed, args.timer_hz)
    except Chip8Error as err:
        logger.error("********** THE EMULATOR CRASHED: %s WITH THE FOLLOWING STATE\n%s", err, chip)
        return 1
    finally:
        pygame.quit()
    return 0


if __name__ == "__main__":
    sys.exit(main())
