from setuptools import find_packages, setup


def read_file(file):
    with open(file, 'rb') as fh:
        data = fh.read()
    return data.decode('utf-8')


def read_version(file):
    ns = {}
    exec(read_file(file), ns)
    return ns['__version__']


setup(name='shpcodec',
      version=read_version('src/shpcodec/__version__.py'),
      description='Pure Python read/write support for the geometry and index files of ESRI Shapefiles',
      long_description=read_file('README.md'),
      long_description_content_type='text/markdown',
      package_dir={'': 'src'},
      packages=find_packages('src'),
      license='MIT',
      zip_safe=False,
      keywords='gis geospatial geographic shapefile shapefiles shp shx',
      python_requires='>= 3.9',
      install_requires=['pyproj'],
      extras_require={'test': ['pytest']},
      classifiers=['Programming Language :: Python',
                   'Programming Language :: Python :: 3',
                   'Topic :: Scientific/Engineering :: GIS',
                   'Topic :: Software Development :: Libraries',
                   'Topic :: Software Development :: Libraries :: Python Modules'])
