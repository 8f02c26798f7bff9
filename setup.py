"""Install auth ticket package."""

from setuptools import setup, find_packages

setup(
    name='auth-tkt',
    version='0.1.0',
    description='Issue and verify mod_auth_tkt single-sign-on tickets.',
    packages=find_packages(include=['auth_tkt', 'auth_tkt.*'],
                           exclude=['*.tests']),
    python_requires='>=3.8',
    install_requires=[
        "click",
        "flask",
        "pydantic>=2",
        "pytz",
        "werkzeug",
    ],
    extras_require={
        'test': [
            "hypothesis",
            "pytest",
            "pytest-mock",
        ]
    },
    entry_points={
        'console_scripts': [
            'generate-ticket=auth_tkt.generate:generate_ticket',
        ]
    },
    zip_safe=False
)
