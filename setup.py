import setuptools

setuptools.setup(
  name="savebuffer",
  version="0.1.0",
  description="Typed in-place reading and editing of checksum-keyed record-stream save files.",
  python_requires=">=3.8,<4.0",
  packages=[ "savebuffer" ],
  install_requires=[
    "numpy",
    "click",
  ],
  extras_require={
    "test": [ "pytest" ],
  },
  entry_points={
    "console_scripts": [
      "savebuffer=savebuffer.cli:main",
    ],
  },
  include_package_data=True,
)
