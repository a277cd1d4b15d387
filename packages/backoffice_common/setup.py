from setuptools import setup, find_packages

setup(
    name="backoffice_common",
    version="0.1.0",
    packages=find_packages(),
    install_requires=[
        "fastapi",
        "python-jose[cryptography]",
        "passlib[bcrypt]",
        "bcrypt==4.0.1",
        "sqlalchemy",
        "asyncpg",
        "pydantic[email]"
    ],
)
