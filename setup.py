from setuptools import setup, find_packages
from pathlib import Path

# Read requirements.txt for the install_requires field
with open('requirements.txt') as f:
    requirements = [line for line in f.read().splitlines() if line and not line.startswith('#')]

# Read README.md if it exists
readme_path = Path(__file__).parent / 'README.md'
long_description = readme_path.read_text() if readme_path.exists() else 'Announcements frame digital signage appliance'

setup(
    name='announcements_frame',
    version='1.0.0',
    description='Drop-folder announcements frame: converts uploads to slides and shows them on a weekly schedule.',
    long_description=long_description,
    long_description_content_type='text/markdown',
    package_dir={'': 'src'},  # Tells setuptools packages are under src
    packages=find_packages(where='src',),  # Find packages in src
    include_package_data=True,
    install_requires=requirements,
    extras_require={
        'test': ['pytest'],
    },
    entry_points={
        'console_scripts': [
            'announcements=announcements_frame.cli:main',
            'announcements-watcher=announcements_frame.services.announcements_watcher:main',
            'announcements-convert=announcements_frame.services.announcements_convert:main',
            'announcements-status=announcements_frame.services.announcements_status:main',
            'announcements-display=announcements_frame.services.announcements_display:main',
            'announcements-slideshow=announcements_frame.services.announcements_slideshow:main',
            'announcements-temp-log=announcements_frame.services.announcements_temp_log:main',
        ],
    },
    classifiers=[
        'Programming Language :: Python :: 3',
        'Operating System :: POSIX :: Linux',
    ],
    python_requires='>=3.9'
)
