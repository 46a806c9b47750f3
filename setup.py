import setuptools

setuptools.setup(
    name="bootmgr",
    version="1.0.0",
    author="The bootmgr committers",
    description=("Inspect, fingerprint and back up Android boot images"),
    license="Apache Software License",
    packages=setuptools.find_packages(exclude=["tests", "tests.*"]),
    install_requires=[
        'click',
        'PyYAML',
    ],
    extras_require={
        'test': ['pytest'],
    },
    entry_points={
        "console_scripts": ["bootmgr=bootmgr.main:bootmgr"]
    },
    classifiers=[
        "Programming Language :: Python :: 3",
        "Development Status :: 4 - Beta",
        "Topic :: Software Development :: Build Tools",
        "License :: OSI Approved :: Apache Software License",
    ],
)
