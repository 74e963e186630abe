#!/usr/bin/python3
# -*- coding: utf-8 -*-

from setuptools import setup, find_packages
import os

ROOT = os.path.abspath(os.path.dirname(__file__))

with open(os.path.join(ROOT, 'README.md'), 'r', encoding='utf-8') as f:
    long_description = f.read()

setup(
    name='pywellcontrol',
    include_package_data=True,
    version='0.1.0',
    packages=find_packages(exclude=['pywellcontrol.tests']),
    description='pyWellControl - A collection of Wellbore Fluid Control Utilities',
    long_description=long_description,
    long_description_content_type='text/markdown',
    author='Mark W. Burgoyne',
    author_email='mark.w.burgoyne@gmail.com',
    keywords=['wellcontrol', 'drilling', 'tripping', 'swab', 'surge', 'petroleum'],
    classifiers=[],
    python_requires='>=3.8',
    install_requires=[
        'numpy',
        'scipy',
        'pandas',
        'tabulate',
        'setuptools'
    ],
    extras_require={
        'test': ['pytest'],
    }
)
