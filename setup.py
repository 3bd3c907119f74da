from setuptools import setup, find_packages

setup(
    name="waynav",
    version="0.1.0",
    packages=find_packages(include=["waynav", "waynav.*"]),
    install_requires=[
        "fastapi",
        "uvicorn",
        "python-dotenv",
        "pydantic>=2",
        "pydantic-settings",
        "googlemaps",
        "polyline",
        "aiohttp",
    ],
    extras_require={
        "test": [
            "pytest",
            "pytest-asyncio",
            "httpx",
        ],
    },
    entry_points={
        "console_scripts": [
            "waynav=waynav.main:run",
        ],
    },
    python_requires=">=3.9",
)
