#!/usr/bin/env python3

from setuptools import setup

setup(
    name="todoclock",
    version="0.1.0",
    description="Time tracking for todo.txt task lists.",
    author="Sean O'Connell",
    author_email="sean@sdoconnell.net",
    license="MIT",
    python_requires='>=3.9',
    packages=['todoclock'],
    install_requires=[
        'PyYAML>=5.4',
        'Rich>=10.2',
        'watchdog>=2.1',
        'python-dateutil>=2.8',
        'tzlocal>=4.0'
    ],
    extras_require={
        'test': [
            'pytest>=7.0'
        ]
    },
    include_package_data=True,
    entry_points={
        "console_scripts": "todoclock=todoclock.todoclock:main"
    },
    keywords='cli time tracking todo.txt utility',
    classifiers=[
        'Development Status :: 4 - Beta',
        'Environment :: Console',
        'Intended Audience :: Developers',
        'Intended Audience :: End Users/Desktop',
        'Natural Language :: English',
        'Operating System :: POSIX',
        'Operating System :: POSIX :: Linux',
        'Programming Language :: Python :: 3',
        'Programming Language :: Python :: 3 :: Only',
        'Programming Language :: Python :: 3.9',
        'Topic :: Office/Business',
        'Topic :: Utilities'
    ]
)
