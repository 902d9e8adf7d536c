"""
elfrpath

Pin an ELF binary's shared-library dependencies to configured search
directories by rewriting its RPATH (and program interpreter) with patchelf.
"""

__version__ = "0.3.0"
