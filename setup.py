from setuptools import setup

tests_require = ['pytest']

long_description = """
Weft is a small cooperative async runtime: a poll-based kernel with
tasks, timers, join combinators and closeable channels.
"""


setup(name="weft",
      description="Weft",
      long_description=long_description,
      license="BSD",
      version="0.1",
      packages=['weft'],
      tests_require=tests_require,
      extras_require={
          'test': tests_require,
      },
      python_requires='>= 3.8',
      classifiers=[
          'Programming Language :: Python :: 3',
      ])
