"""
EntiGen - Incremental PHP Entity Generator
Install: pip install -e .
"""

from setuptools import setup, find_packages

with open("README.md", "r", encoding="utf-8") as f:
    long_description = f.read()

setup(
    name="entigen",
    version="1.0.0",
    author="Diegoproggramer",
    author_email="",
    description="⚡ Add fields and bidirectional relations to PHP entity classes",
    long_description=long_description,
    long_description_content_type="text/markdown",
    url="https://github.com/Diegoproggramer/entigen",
    packages=find_packages(exclude=["tests", "tests.*"]),
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "Topic :: Software Development :: Code Generators",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Programming Language :: PHP",
    ],
    python_requires=">=3.10",
    install_requires=[
        "pydantic>=2.0.0",
        "pyyaml>=6.0",
        "inflection>=0.5.1",
    ],
    extras_require={
        "test": [
            "pytest>=7.0",
        ],
        "dev": [
            "pytest>=7.0",
            "black>=23.0",
            "ruff>=0.1.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "entigen=entigen.cli:cli_main",
        ],
    },
    keywords="php, entity, orm, generator, code-generator, monkeyslegion, relations",
    project_urls={
        "Bug Reports": "https://github.com/Diegoproggramer/entigen/issues",
        "Source": "https://github.com/Diegoproggramer/entigen",
    },
)
