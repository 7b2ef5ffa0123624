from setuptools import setup
import os

HERE = os.path.dirname(os.path.abspath(__file__))


def read_requirements(filename='requirements.txt'):
    """Returns the requirement specifiers in filename, without comments or pip options."""
    requirements = []
    with open(os.path.join(HERE, filename), 'r', encoding='utf-8') as f:
        for raw_line in f:
            line = raw_line.split('#', 1)[0].strip()
            # pip options (-r, -e, --index-url ...) are not install_requires entries
            if not line or line.startswith('-'):
                continue
            requirements.append(line)
    return requirements


# Project metadata is in pyproject.toml; dependencies are dynamic and come from here.
setup(
    install_requires=read_requirements(),
)
