#!/usr/bin/env python3
"""PTY Demo - Shows what a program sees when it runs on a pseudoterminal."""

import sys

from ptyexec import ControlChar, Pty, WindowSize, default_terminal_modes, exec_in_pty


def demo_pty():
    """Run a few small programs on fresh PTYs and print what comes back."""
    print("PTY Support Demo")
    print("=" * 50)

    print(f"Platform: {sys.platform}")
    print(f"PTY Available: {Pty.is_available()}")
    print()

    if not Pty.is_available():
        print("PTY is not available on this platform.")
        return

    # Command that behaves differently with PTY
    command = ["/bin/sh", "-c", "if [ -t 0 ]; then echo 'Running in TTY mode'; else echo 'Running in pipe mode'; fi"]
    print("Running with PTY:")
    with exec_in_pty(command[0], command) as pty:
        output = pty.get_input_stream().read()
        exit_code = pty.wait_for()
    print(f"Output: {output.decode().strip()}")
    print(f"Exit code: {exit_code}")
    print()

    print("Demo: window size")
    command = ["/bin/sh", "-c", "stty size"]
    with exec_in_pty(command[0], command, window_size=WindowSize(rows=40, cols=132)) as pty:
        output = pty.get_input_stream().read()
        pty.wait_for()
    print(f"stty reports rows/cols: {output.decode().strip()}")
    print()

    print("Demo: talking to an interactive program")
    modes = default_terminal_modes().with_control_char(ControlChar.END_OF_FILE, b"\x04")
    with exec_in_pty("/bin/cat", ["/bin/cat"], terminal_modes=modes) as pty:
        out = pty.get_output_stream()
        out.write(b"hello through the pty\n\x04")
        out.flush()
        output = pty.get_input_stream().read()
        exit_code = pty.wait_for()
    # ECHO is on, so the line comes back twice: once echoed, once from cat.
    print(f"Output: {output!r}")
    print(f"Exit code: {exit_code}")
    print()

    print("PTY demo completed successfully!")


if __name__ == "__main__":
    demo_pty()
