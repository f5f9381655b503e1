# -*- coding: utf-8 -*-
import codecs
from setuptools import setup, find_packages


tests_require = [
    'Flask>=1.0',
    'pytest>=3.0',
]

setup(
    name='Hyperdrive',
    version='0.1.0',
    packages=find_packages(exclude=['*tests*']),
    license='MIT',
    description='Hypermedia API client driven by API Blueprint',
    long_description=codecs.open('README.rst', encoding='utf-8').read(),
    tests_require=tests_require,
    install_requires=[
        'requests>=2.14',
        'uritemplate>=3.0',
        'Werkzeug>=1.0',
        'jsonschema>=2.4.0',
        'blinker>=1.3',
        'rfc3987',
    ],
    classifiers=[
        'Development Status :: 3 - Alpha',
        'Intended Audience :: Developers',
        'License :: OSI Approved :: MIT License',
        'Operating System :: OS Independent',
        'Programming Language :: Python',
        'Programming Language :: Python :: 3',
        'Topic :: Internet :: WWW/HTTP',
        'Topic :: Software Development :: Libraries :: Python Modules'
    ],
    zip_safe=False,
    extras_require={
        'tests': tests_require,
    }
)
