"""
Setup script for tiny-hdr.
"""

from setuptools import setup, find_packages

setup(
    name="tiny-hdr",
    version="0.1.0",
    packages=find_packages(include=["tiny_hdr", "tiny_hdr.*"]),
    package_data={"tiny_hdr": ["py.typed"]},
    python_requires=">=3.8",
)
