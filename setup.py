from setuptools import setup, find_packages

setup(
    name='camstream_sdk_python',
    version='0.1.0',
    description='UDP camera frame and pose receiver',
    packages=find_packages(include=['camstream_sdk_python', 'camstream_sdk_python.*']),
    python_requires='>=3.8',
    install_requires=[
        'numpy',
        'scipy',
    ],
    extras_require={
        'test': ['pytest'],
    },
)
