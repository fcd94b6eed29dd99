"""
modelgate - Model catalog and per-user access resolution

This setup.py file is provided for pip install compatibility.
"""

from pathlib import Path

from setuptools import find_packages, setup

README = Path(__file__).parent / "README.md"

if __name__ == "__main__":
    setup(
        name="modelgate",
        version="0.3.0",
        description="In-memory model catalog with per-user provider access resolution.",
        long_description=README.read_text(encoding="utf-8") if README.exists() else "",
        long_description_content_type="text/markdown",
        package_dir={"": "src"},
        packages=find_packages(where="src"),
        package_data={"modelgate": ["data/*.yaml"]},
        include_package_data=True,
        python_requires=">=3.11",
        install_requires=[
            "pydantic>=2.5",
            "PyYAML>=6.0",
            "httpx>=0.25",
            "tenacity>=8.2",
            "prettytable>=3.9",
        ],
        extras_require={
            "test": [
                "pytest>=7.4",
                "pytest-asyncio>=0.23",
            ],
        },
        entry_points={
            "console_scripts": [
                "modelgate=modelgate.cli:main",
            ],
        },
        classifiers=[
            "Development Status :: 4 - Beta",
            "Intended Audience :: Developers",
            "Programming Language :: Python :: 3",
            "Programming Language :: Python :: 3.11",
            "Programming Language :: Python :: 3.12",
            "Topic :: Scientific/Engineering :: Artificial Intelligence",
        ],
    )
