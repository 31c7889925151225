from setuptools import setup, find_packages

def read_requirements():
    with open('requirements.txt') as req:
        content = req.read()
        requirements = content.split('\n')
    # Filter out comments and empty lines
    return [req for req in requirements if req and not req.startswith('#')]

setup(
    name='service_order_system',
    version='0.1.0',
    packages=find_packages(exclude=["tests*"]),
    py_modules=['worker'],
    include_package_data=True,
    install_requires=read_requirements(),
    extras_require={
        'test': [
            'pytest>=7.4',
            'pytest-asyncio>=0.23',
            'httpx>=0.25',
        ],
    },
    description='Automotive service order lifecycle with a Temporal-based Saga and FastAPI',
    long_description=open('README.md').read(),
    long_description_content_type='text/markdown',
    classifiers=[
        "Programming Language :: Python :: 3",
        "Operating System :: OS Independent",
        "Framework :: FastAPI",
    ],
    python_requires='>=3.9',
)
