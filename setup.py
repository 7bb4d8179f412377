import re

from setuptools import setup

with open("bsvutils/__init__.py") as init_file:
    __version__ = re.search(r'^__version__ = "([^"]+)"', init_file.read(), re.M).group(1)

with open("README.rst") as readme:
    long_description = readme.read()

setup(
    name="bsv-wallet-utils",
    version=__version__,
    description="Bitcoin SV script, signing and transaction building utilities for wallets",
    long_description=long_description,
    author="The bsv-wallet-utils developers",
    license="MIT",
    keywords="bitcoin bsv ordinals wallet script transaction library",
    install_requires=[
        "coincurve>=13.0.0",
        # DER signature codec and curve parameters
        "ecdsa>=0.18,<1.0",
    ],
    extras_require={
        "test": ["pytest"],
    },
    python_requires=">=3.10",
    packages=["bsvutils"],
    zip_safe=False,
)
