# see https://github.com/karlicoss/pymplate for up-to-date reference
from setuptools import setup, find_namespace_packages # type: ignore


def main() -> None:
    # works with both ordinary and namespace packages
    pkgs = find_namespace_packages('src')
    pkg = min(pkgs)
    setup(
        name=pkg,
        use_scm_version={
            'version_scheme': 'python-simplified-semver',
            'local_scheme': 'dirty-tag',
            # building from an sdist/tarball without git metadata
            'fallback_version': '0.1.0',
        },

        # otherwise mypy won't work
        # https://mypy.readthedocs.io/en/stable/installed_packages.html#making-pep-561-compatible-packages
        zip_safe=False,

        packages=pkgs,
        package_dir={'': 'src'},
        # necessary so that package works with mypy
        package_data={pkg: ['py.typed']},

        description='Strips tracking junk (utm_source and friends) from URLs, with per-host rules',

        python_requires='>=3.9',
        install_requires=[
            'appdirs', # for portable user directories detection
            'more_itertools',
            'logzero', # pretty colored logging

            *DEPS_DOCUMENTS,
        ],
        extras_require={
            'testing': [
                 'pytest',
                 'ruff',
                 'mypy',
            ],
        },
        entry_points={
            'console_scripts': ['stripper=stripper.__main__:main'],
        }
    )

DEPS_DOCUMENTS = [
    'beautifulsoup4', # rewriting links in html
    'lxml'          , # bs4 backend
    'urlextract'    , # finding urls in plaintext
]


if __name__ == "__main__":
    main()
