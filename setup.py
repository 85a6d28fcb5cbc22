"""
Setup file.
"""

from pathlib import Path

from setuptools import setup

URL = "https://github.com/zackees/ptyexec"
KEYWORDS = "pty pseudoterminal terminal subprocess"
HERE = Path(__file__).parent



if __name__ == "__main__":
    setup(
        maintainer="Zachary Vorhies",
        keywords=KEYWORDS,
        url=URL,
        include_package_data=True)
