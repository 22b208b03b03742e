from setuptools import setup, find_namespace_packages

setup(
    name='atmfjstc-awake',
    version='0.1.0',

    author_email='atmfjstc@protonmail.com',

    package_dir={'': 'src'},
    packages=find_namespace_packages(where='src', include=['atmfjstc.*']),

    install_requires=[
        'termcolor>=1.1, <3',
    ],

    extras_require={
        'test': [
            'pytest>=6',
        ],
    },

    entry_points={
        'console_scripts': [
            'awake = atmfjstc.awake.__main__:main',
        ],
    },

    zip_safe=True,

    description="Keeps a Mac awake for a while, or until stopped, by supervising the 'caffeinate' utility",

    classifiers=[
        "Programming Language :: Python :: 3",
        "License :: OSI Approved :: MIT License",
        "Operating System :: MacOS :: MacOS X",
        "Environment :: Console",
        "Topic :: System :: Power (UPS)",
        "Typing :: Typed",
    ],
    python_requires='>=3.8',
)
