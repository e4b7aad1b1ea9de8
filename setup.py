from setuptools import setup, find_packages

setup(
    name="wavebeat",
    version="0.1.0",
    packages=find_packages(exclude=["tests", "tests.*"]),
    py_modules=["wavebeat_cli"],
    install_requires=[
        "numpy",
        "librosa",
    ],
    extras_require={
        'test': [
            "pytest",
            "soundfile",
        ],
    },
    entry_points={
        'console_scripts': [
            'wavebeat=wavebeat_cli:main',
        ],
    },
    python_requires='>=3.8',
    description="Beat event and tempo detection on interleaved 16-bit stereo PCM",
    author="Dance to Beat",
)
