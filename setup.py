import os

from setuptools import setup


def readme():
    with open('README.rst', 'r') as f:
        return f.read()


def find_packages():
    """Find all packages (i.e. folders with an __init__.py file inside)"""
    packages = []
    for root, _, files in os.walk("flexcalc"):
        for f in files:
            if f == "__init__.py":
                packages.append(root.replace(os.path.sep, "."))
    return packages


subpackages = find_packages()

setup(name='flexcalc',
      version='0.1',
      description='Flexibility score (mean RMSD to the most representative frame) of MD '
                  'trajectories',
      long_description=readme(),
      classifiers=[
          'Development Status :: 3 - Alpha',
          'License :: OSI Approved :: GNU General Public License (GPL)',
          'Programming Language :: Python :: 3',
          'Topic :: Scientific/Engineering :: Chemistry',
      ],
      keywords='MD RMSD trajectory flexibility',
      url='http://github.com/',
      license='GPLv3',
      packages=subpackages,
      python_requires='>=3.6',
      install_requires=['numpy', 'daiquiri'],
      extras_require={'test': ['pytest>=7']},
      entry_points={
          'console_scripts': ['flexcalc=flexcalc.analysis.flexibility:main',
                              'flexcalc-config=flexcalc.config:main',
                              ],
      },
      include_package_data=True,
      zip_safe=False,
      )
