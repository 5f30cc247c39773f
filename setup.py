import setuptools

setuptools.setup(
    name="passwatch",
    description="Satellite visibility, pass prediction and pass reminders",
    version="1.0.0",
    author="Matthew Phelps",
    author_email="matthewphelps@odysseyconsult.com",
    packages=setuptools.find_namespace_packages(include=["passwatch", "passwatch.*"]),
    package_data={"passwatch": ["logging/logging_config.json"]},
    python_requires=">=3.10",
    install_requires=[
        "numpy",
        "skyfield",
        "pytz",
        "loguru",
    ],
    extras_require={
        "test": [
            "pytest",
            "pytest-asyncio",
        ],
    },
    entry_points={
        "console_scripts": [
            "passwatch=passwatch.tracker.cli:main",
        ],
    },
)
