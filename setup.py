from setuptools import setup, find_packages

setup(
    name="constituent-segments",
    version="0.1",
    packages=find_packages(exclude=['tests', 'tests.*']),
    python_requires='>=3.9',
    install_requires=[
        'google-auth-oauthlib>=1.0.0',
        'google-auth-httplib2>=0.1.0',
        'httplib2>=0.19.0',
        'google-api-python-client>=2.86.0',
        'SQLAlchemy>=2.0.19',
        'python-dateutil>=2.8.2',
        'python-dotenv>=1.0.0',
        'pydantic>=2.6.1',
        'structlog>=23.1.0',
    ],
    extras_require={
        'test': ['pytest>=7.0'],
    },
    entry_points={
        'console_scripts': [
            'constituent-segments=src.main:main',
        ],
    },
)
