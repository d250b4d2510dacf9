from setuptools import setup

readme = open('README.rst', 'r')
README_TEXT = readme.read()
readme.close()

setup(
    name="powermax",
    version="1.0.0",
    description="Dell PowerMax Unisphere REST Client",
    keywords=["dell", "powermax", "unisphere", "storage", "rest", "client"],
    license="BSD 2-Clause",
    packages=["powermax"],
    install_requires=["requests"],
    extras_require={"test": ["pytest", "mock"]},
    long_description=README_TEXT,
)
