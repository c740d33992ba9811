from pathlib import Path
from setuptools import setup, find_packages

# Read the long description from README.md
this_directory = Path(__file__).parent
long_description = (this_directory / "README.md").read_text(encoding="utf-8")

# Core dependencies
core_deps = [
    "jax",
    "numpy",
    "scipy",
    "tqdm",
    "pandas",
    "plotly",
    "loguru",
    "scikit-learn",
    "joblib",
]

# UMAP backend method
umap_deps = [
    "umap-learn",
]

setup(
    name="dimred-stability",
    version="0.1.0",
    description="Stability assessment of dimensionality reductions under sample resampling",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(include=["dimred_stability", "dimred_stability.*"]),
    include_package_data=True,
    classifiers=[
        "Programming Language :: Python :: 3",
        "License :: OSI Approved :: Apache Software License",
        "Operating System :: OS Independent",
    ],
    python_requires=">=3.9",
    install_requires=core_deps,
    extras_require={
        "umap": umap_deps,
        "test": ["pytest"],
        "all": umap_deps,
    },
)
