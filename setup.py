from setuptools import setup, find_packages
setup(
    name="green_access_map",
    version="0.1.0",
    package_dir={"": "src"},
    packages=find_packages("src"),
    include_package_data=True,
    python_requires=">=3.9",
    install_requires=[
        "fastapi>=0.100",
        "pydantic>=2",
        "httpx>=0.24",
        "shapely>=2.0",
        "flatgeobuf>=0.3.1",
        "geopandas>=0.14",
        "pandas>=2.0",
        "pyogrio>=0.7",
    ],
    extras_require={
        'test': [
            "pytest>=7",
        ]
    },
    entry_points={
        'console_scripts': [
            'green_access_map=green_access_map.__main__:_safe_main'
        ]
    }
)
