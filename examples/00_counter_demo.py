"""
Counter Demo

A small frame-driven app on top of pi-term:
- Left/Right change a counter
- the background turns red while the counter is negative, green otherwise,
  and fades back to the default after a second
- q or Escape quits, p raises an exception to show the terminal being
  restored before the traceback prints
"""
import logging
import time

from pi_term import (
    App,
    KeyEvent,
    ModeConfiguration,
    ScreenBuffer,
    TerminalPlugin,
    ViewportSize,
)


class Counter:
    def __init__(self):
        self.value = 0
        self.frames = 0
        self.flash_color = None
        self.flash_until = 0.0

    @property
    def state(self) -> str:
        return "negative" if self.value < 0 else "positive"


counter = Counter()


def keyboard_input_system(app: App) -> None:
    for event in app.read_events(KeyEvent):
        if event.kind != "press":
            continue
        if event.matches("q") or event.matches("escape"):
            app.request_exit()
        elif event.matches("p"):
            raise RuntimeError("Panic!")
        elif event.matches("left"):
            change_counter(-1)
        elif event.matches("right"):
            change_counter(1)


def change_counter(delta: int) -> None:
    before = counter.state
    counter.value += delta
    if counter.state != before:
        # Recolour only when the sign changes
        counter.flash_color = "41" if counter.state == "negative" else "42"
        counter.flash_until = time.monotonic() + 1.0


def draw(buffer: ScreenBuffer, size: ViewportSize, resized: bool) -> None:
    counter.frames += 1
    background = ""
    if counter.flash_color and time.monotonic() < counter.flash_until:
        background = f"\x1b[{counter.flash_color}m"

    buffer.clear()
    frame_label = f"Frame Count: {counter.frames}"
    buffer.set_line(0, background + frame_label.rjust(size.width))
    buffer.set_line(1, background + f"Counter: {counter.value}")
    buffer.set_line(2, background + f"State: {counter.state}")
    buffer.set_line(4, "Left/Right to change, q to quit, p to panic")


def main():
    logging.basicConfig(filename="counter_demo.log", level=logging.DEBUG)

    app = App()
    app.add_plugin(TerminalPlugin(ModeConfiguration.from_env(), draw=draw))
    app.add_system("update", keyboard_input_system)
    app.run(frame_rate=60)


if __name__ == "__main__":
    main()
