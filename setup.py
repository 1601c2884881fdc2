from pathlib import Path
from setuptools import setup, find_packages


def read_readme() -> str:
    readme_path = Path(__file__).resolve().parent / "README.md"
    return readme_path.read_text(encoding="utf-8") if readme_path.exists() else ""


setup(
    name="blcrypt",
    version="1.2.0",
    packages=find_packages(exclude=["tests", "tests.*"]),
    install_requires=[
        "cryptography>=41.0.0",
        "PyYAML>=6.0",
        "colorama>=0.4.6",
    ],
    extras_require={
        "test": ["pytest>=7.0"],
    },
    entry_points={
        "console_scripts": ["blcrypt=blcrypt.main:main"],
    },
    python_requires=">=3.10",
    description="Decrypt, edit and re-encrypt Borderlands 4 save containers and item serials",
    long_description=read_readme(),
    long_description_content_type="text/markdown",
)
