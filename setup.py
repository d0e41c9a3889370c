from setuptools import setup, find_packages

setup(
    name='cdft_micelle',               # Package name
    version='0.1.0',                   # Version number
    author='vikkivarma16',
    author_email='vikkivarma16@gmail.com',
    url='https://github.com/vikkivarma16/cDFT_solver',
    description="Classical density functional theory of surfactant micelles and the critical micelle concentration.",
    packages=find_packages(exclude=["tests", "tests.*"]),
    include_package_data=True,
    install_requires=[                 # Dependencies your package needs
        'numpy',
        'scipy',
        'sympy',
        'matplotlib',
    ],
    extras_require={
        'test': ['pytest'],
    },
    entry_points={
        'console_scripts': [
            'cdft-micelle=cdft_micelle.executor_micelle_main:main',
        ],
    },
    python_requires='>=3.10',          # Minimum Python version
    classifiers=[
        'Programming Language :: Python :: 3',
        'License :: OSI Approved :: MIT License',
        'Operating System :: OS Independent',
    ],
)
