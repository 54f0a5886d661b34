# -*- coding: utf-8 -*-
"""
Created on Mon Oct  5 08:44:30 2026

@author: p-sik

Packaging of SerReader.
"""

import setuptools

def get_version():
    with(open("src/SerReader/__init__.py", "r")) as fh:
        for line in fh:
            if line.startswith("__version__"):
                delim = '"' if '"' in line else "'"
                return line.split(delim)[1]
        else:
            raise RuntimeError("Unable to find version string.")

def get_long_description():
    with open("README.md", "r", encoding="utf-8") as fh: description = fh.read()
    return(description)

setuptools.setup(
    name="SerReader",
    version=get_version(),
    description=\
        "Reader for TIA/ES Vision .ser image stacks (TEM).",
    long_description=get_long_description(),
    long_description_content_type="text/markdown",
    project_urls={},
    classifiers=[
        "Programming Language :: Python :: 3",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent"],
    license='MIT',
    package_dir={"":"src"},
    packages=setuptools.find_packages(where="src"),
    python_requires=">=3.8",
    install_requires=[
        "numpy",
        "h5py",
        "tqdm",
        "matplotlib",
        "toml; python_version < '3.11'",
        ],
    extras_require={
        "test": ["pytest"],
        },
    include_package_data=True)
