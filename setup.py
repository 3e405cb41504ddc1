from setuptools import setup, find_packages


with open("README.md", "r", encoding="utf-8") as fh:
    long_description = fh.read()

# Read the requirements from requirements.txt when it is present.  Lines
# beginning with a ``#`` or empty lines are ignored.  If the file is missing
# during editable installs, fall back to the core packages.
try:
    with open("requirements.txt", "r", encoding="utf-8") as req_file:
        requirements = [line.strip() for line in req_file if line.strip() and not line.startswith("#")]
except FileNotFoundError:
    requirements = [
        "numpy>=1.24",
        "pandas>=1.5",
        "scikit-learn>=1.2",
    ]

setup(
    name="kneighbors",
    version="1.0.0",
    author="kneighbors Development Team",
    description="K-nearest neighbours classification with a pluggable spatial index",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(exclude=["tests", "tests.*"]),
    python_requires=">=3.10",
    install_requires=requirements,
    extras_require={
        "test": ["pytest>=7.2"],
    },
    entry_points={
        "console_scripts": [
            "kneighbors=kneighbors.cli:main",
        ],
    },
    classifiers=[
        "Programming Language :: Python :: 3",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
    ],
)
