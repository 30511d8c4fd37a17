from setuptools import setup, find_packages

setup(
    name="sqlite-to-scylla",
    version="0.1",
    packages=find_packages(exclude=["tests", "tests.*"]),
    install_requires=[
        "loguru",
        "sqlalchemy",
        "cassandra-driver",
    ],
    extras_require={
        "test": ["pytest"],
    },
)
