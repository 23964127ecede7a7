"""
Event Viewer Example

Shows every translated terminal event as it arrives: keys (with repeat and
release when the terminal supports the Kitty keyboard protocol), mouse,
focus, paste and resize. Set PI_TERM_EMULATION_POLICY=automatic to see
emulated releases and modifier keys on a terminal without the Kitty
protocol. Uses the FrameDriver directly instead of the App
host, to show the per-tick loop without a scheduler.

Ctrl+C quits.
"""
import time

from pi_term import (
    FrameDriver,
    KeyEvent,
    ModeConfiguration,
    MouseEvent,
    TerminalSession,
)

MAX_LINES = 200


def describe(event) -> str:
    if isinstance(event, KeyEvent):
        return f"key    {event.key_id:<20} {event.kind}"
    if isinstance(event, MouseEvent):
        button = event.button or "-"
        return f"mouse  {event.kind:<12} {button:<7} at {event.column},{event.row}"
    return f"{event.type:<6} {event.model_dump(exclude={'type'})}"


def main():
    config = ModeConfiguration.from_env(mouse_capture=True, focus_reporting=True)
    lines: list[str] = []
    running = True

    def publish(event):
        lines.append(describe(event))
        del lines[:-MAX_LINES]

    def request_exit():
        nonlocal running
        running = False

    def draw(buffer, size, resized):
        buffer.clear()
        enhanced = session.keyboard_enhancement_active
        emulated = driver.emulator.emulated.name or "none"
        buffer.set_line(
            0,
            f"\x1b[7m pi-term events  {size.width}x{size.height}  kitty={enhanced}  emulating={emulated} \x1b[0m",
        )
        buffer.set_lines(lines[-(size.height - 1):], start=1)

    with TerminalSession.open(config) as session:
        driver = FrameDriver(session, draw=draw, publish=publish, request_exit=request_exit)
        while running:
            driver.tick()
            time.sleep(1 / 30)


if __name__ == "__main__":
    main()
