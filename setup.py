# setup.py
from setuptools import setup, find_packages
import os
import sys

# Define a version fallback in case the file can't be read
version = {'__version__': '1.0.0'}  # Default version

# Try reading version from the package's __init__ file if it exists
version_file_path = "scramble_analysis/core/__init__.py"
try:
    if os.path.exists(version_file_path):
        with open(version_file_path) as fp:
            exec(fp.read(), version)
    else:
        print(f"Warning: {version_file_path} not found. Using default version.", file=sys.stderr)
except (OSError, SyntaxError) as e:
    print(f"Warning: Could not read version from {version_file_path}: {e}", file=sys.stderr)

# Read the long description from README.md
try:
    with open('README.md', encoding='utf-8') as f:
        long_description = f.read()
except FileNotFoundError:
    long_description = "Leaflet composition, scrambling rate and flip-flop analysis of lipid membranes."

base_requires = [
    "numpy",
    "pandas",
    "matplotlib",
    "seaborn",
    "mdanalysis>=2.0.0",
    "tqdm",
]

setup(
    name="scramble_analysis",
    version=version['__version__'],
    packages=find_packages(exclude=["tests"]),
    include_package_data=True,
    install_requires=base_requires,
    extras_require={
        'dev': [  # Development/testing tools
            'pytest',
        ],
    },
    entry_points={
        'console_scripts': [
            'scramble_analysis=scramble_analysis.main:main',
        ],
    },
    description="Leaflet composition, scrambling rate and flip-flop analysis of lipid membranes.",
    long_description=long_description,
    long_description_content_type="text/markdown",
    classifiers=[
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.9",
        "Operating System :: OS Independent",
        "Topic :: Scientific/Engineering :: Chemistry",
        "Topic :: Scientific/Engineering :: Bio-Informatics",
        "Topic :: Scientific/Engineering :: Physics",
    ],
    python_requires='>=3.9',
)
