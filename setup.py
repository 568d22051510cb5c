from setuptools import setup

setup(
    name="beanstalk-py",
    version="0.1.0",
    description="asyncio client for the beanstalkd work queue",
    license="Apache 2 License",
    python_requires=">=3.10",
    install_requires=["typing_extensions"],
    extras_require={
        "test": ["pytest", "pytest-asyncio"],
    },
    packages=["beanstalk", "beanstalk.protocol"],
    package_data={"beanstalk": ["py.typed"]},
    zip_safe=True,
)
