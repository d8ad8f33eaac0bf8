from pathlib import Path
from setuptools import find_packages, setup


def read_requirements() -> list[str]:
    req_path = Path(__file__).parent / "requirements.txt"
    if not req_path.exists():
        return []
    return [line.strip() for line in req_path.read_text(encoding="utf-8").splitlines() if line.strip() and not line.startswith("#")]


setup(
    name="marketing-compliance",
    version="0.1.0",
    description="Rule-based RBI compliance analysis for FinTech marketing copy",
    packages=find_packages(include=["marketing_compliance", "marketing_compliance.*"]),
    py_modules=["compliance_scan"],
    install_requires=read_requirements(),
    extras_require={"test": ["pytest>=7"]},
    python_requires=">=3.10",
    include_package_data=True,
    package_data={"marketing_compliance": ["guidelines/data/*.json"]},
)
