"""
Dependency discovery for pkgrecompile.

- import_scanners: find module specifiers in ESM, UMD and CommonJS source
- module_resolver: map a specifier to a file, entry point or deep import
- dependency_host: follow a bundle's imports through its package
- dependency_resolver: build and sort the entry-point dependency graph
"""
