from setuptools import setup, find_packages

setup(
    name="alcstream",
    version="0.1.0",
    description="Budgeted active learning with clustering for data streams.",
    long_description=open("README.md").read(),
    long_description_content_type="text/markdown",
    packages=find_packages(exclude=["tests", "tests.*"]),
    classifiers=[
        "Programming Language :: Python :: 3",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
    ],
    python_requires=">=3.8",
    install_requires=[
        "numpy",
        "tqdm",
        "torch",
        "scikit-learn>=1.1",
    ],
    extras_require={
        "analysis": ["pandas"],
        "test": ["pytest", "pandas"],
    },
)
