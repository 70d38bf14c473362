from setuptools import setup, find_packages

setup(
    name="mpzap",
    version="0.1.0",
    description="MicroPython CLI tool: manage files on a board over its serial raw REPL.",
    packages=find_packages(exclude=["tests", "tests.*"]),
    python_requires=">=3.9",
    install_requires=[
        "pyserial>=3.5", # serial.tools.miniterm is part of pyserial
    ],
    extras_require={
        "test": ["pytest>=7"],
    },
    entry_points={
        "console_scripts": [
            "zap=mpzap.cli:main",
        ],
    },
    include_package_data=True,
)
