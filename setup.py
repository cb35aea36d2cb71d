"""
python -m build
twine upload dist/*
"""

from setuptools import setup, find_packages


def sqlafill_setup():
    with open("requirements.txt", "rt") as fp:
        install_requires = fp.read().strip().split("\n")

    version = "0.1.0"

    setup(
        name="sqlafill",
        packages=find_packages(exclude=["tests"]),
        version=version,
        license="MIT",
        description="sqlafill : fill, validate and serialize SqlAlchemy entity graphs from json payloads",
        long_description=open("README.rst").read(),
        keywords=["SqlAlchemy", "Flask", "REST", "JSON", "marshmallow", "validation"],
        python_requires=">=3.8, <4",
        install_requires=install_requires,
        classifiers=[
            "Development Status :: 3 - Alpha",
            "License :: OSI Approved :: MIT License",
            "Intended Audience :: Developers",
            "Framework :: Flask",
            "Topic :: Software Development :: Libraries",
            "Environment :: Web Environment",
            "Programming Language :: Python :: 3.12",
            "Programming Language :: Python :: 3.11",
            "Programming Language :: Python :: 3.10",
            "Programming Language :: Python :: 3.9",
            "Programming Language :: Python :: 3.8",
        ],
        extras_require={"test": ["pytest>=7.0"]},
    )


sqlafill_setup()  # pragma: no cover
