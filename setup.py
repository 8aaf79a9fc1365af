"""
Install ccdpag
"""
from setuptools import setup

with open("README.md", "r", encoding="utf-8") as fh:
    long_description = fh.read()

# Define the minimal classes needed to install and run ccdpag
INSTALL_REQUIRES = ["numpy>=1.18", "joblib>=1.2.0"]
# Define all the possible extras needed
EXTRAS_REQUIRE = {
    "all": [
        "tigramite>=5.2",     # statistical conditional independence tests
    ]
}

# Define the packages needed for testing
TESTS_REQUIRE = ["pytest"]
EXTRAS_REQUIRE["test"] = TESTS_REQUIRE
# Define the extras needed for development
EXTRAS_REQUIRE["dev"] = EXTRAS_REQUIRE["all"] + TESTS_REQUIRE

# Run the setup
setup(
    name="ccdpag",
    version="0.1.0",
    packages=["ccdpag"],
    license="GNU General Public License v3.0",
    description="Cyclic causal discovery of partial ancestral graphs",
    long_description=long_description,
    long_description_content_type="text/markdown",
    keywords="causal inference, causal discovery, feedback, cyclic models",
    install_requires=INSTALL_REQUIRES,
    extras_require=EXTRAS_REQUIRE,
    test_suite="tests",
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Science/Research",
        "Topic :: Scientific/Engineering :: Artificial Intelligence",
        "Topic :: Scientific/Engineering :: Mathematics",
        "License "
        ":: OSI Approved "
        ":: GNU General Public License v3 or later (GPLv3+)",
        "Programming Language :: Python",
    ],
)
