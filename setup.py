from setuptools import find_packages, setup

deps = [
    "click",
    "click-aliases",
    "fastapi",
    "minio",
    "pika",
    "pillow",
    "pydantic>=2",
    "pydantic-settings",
    "python-multipart",
    "requests",
    "requests-toolbelt",
    "sqlalchemy>=2",
    "starlette",
    "uvicorn",
]

test_deps = [
    "httpx",
    "pytest",
]

setup(
    name="photosio",
    version="0.1.0",
    script_name="setup.py",
    python_requires=">=3.8",
    zip_safe=False,
    install_requires=deps,
    extras_require={"test": test_deps},
    include_package_data=True,
    packages=find_packages(exclude=["tests", "tests.*"]),
    entry_points={
        "console_scripts": [
            "pio=photosio.cli:cli",
            "photosio-create-tables=photosio.dev_cli:main",
        ],
    },
)
