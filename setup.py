from pathlib import Path

from setuptools import find_namespace_packages, setup

# Load packages from requirements.txt
BASE_DIR = Path(__file__).parent
with open(Path(BASE_DIR, "requirements.txt")) as file:
    required_packages = [ln.strip() for ln in file.readlines() if ln.strip() and not ln.startswith("#")]

# Define our package
setup(
    name="mathpractice",
    version="0.1.0",
    description="Adaptive arithmetic practice engine: problem generation, attempt cycle, difficulty and rewards",
    python_requires=">=3.10",
    packages=find_namespace_packages(include=["mathpractice", "mathpractice.*"]),
    package_data={"mathpractice": ["schemas/*.json"]},
    install_requires=required_packages,
    extras_require={
        "test": ["pytest>=7.0"],
        "dev": ["pytest>=7.0", "pre-commit==2.19.0"],
    },
)
