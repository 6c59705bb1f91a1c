# Copyright 2026 Canonical Ltd.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
# http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""Setup script for the charmhook library."""

from importlib.util import module_from_spec, spec_from_file_location

from setuptools import find_packages, setup


def _read_me() -> str:
    """Return the README content from the file."""
    with open("README.md", "rt", encoding="utf8") as fh:
        readme = fh.read()
    return readme


def _get_version() -> str:
    """Get the version via charmhook/version.py, without loading charmhook/__init__.py."""
    spec = spec_from_file_location('charmhook.version', 'charmhook/version.py')
    if spec is None:
        raise ModuleNotFoundError('could not find /charmhook/version.py')
    if spec.loader is None:
        raise AttributeError('loader', spec, 'invalid module')
    module = module_from_spec(spec)
    spec.loader.exec_module(module)

    return module.version


setup(
    name="charmhook",
    version=_get_version(),
    description="Run a unit's lifecycle hooks as independent, stateful components",
    long_description=_read_me(),
    long_description_content_type="text/markdown",
    license="Apache-2.0",
    author="The Charmcraft team at Canonical Ltd.",
    author_email="charmcraft@lists.launchpad.net",
    packages=find_packages(include=('charmhook', 'charmhook.*')),
    classifiers=[
        "Programming Language :: Python :: 3",
        "License :: OSI Approved :: Apache Software License",
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Developers",
        "Intended Audience :: System Administrators",
        "Operating System :: POSIX :: Linux",
    ],
    python_requires='>=3.10',
    install_requires=[  # must stay in sync with requirements.txt
        'PyYAML==6.*',
    ],
    extras_require={
        'testing': ['pytest'],
    },
    package_data={'charmhook': ['py.typed']},
)
