from setuptools import setup, find_packages

setup(
    name="streamget",
    version="0.1.0",
    description="Record live HTTP audio streams to disk, reconnecting when they drop",
    author="",
    python_requires=">=3.8",
    packages=find_packages(exclude=["tests", "tests.*"]),
    install_requires=[
        "aiohttp>=3.8.0",
        "pydantic>=2.0.0",
        "pypubsub>=4.0.3",
        "pyyaml>=6.0.0",
        "rich>=12.5.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.0.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "streamget=streamget.main:main",
        ],
    },
)
