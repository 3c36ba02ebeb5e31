"""
Service layer for pkgrecompile.

Discovery, planning and compilation logic built on the domain and
infrastructure layers:
- package_config / entry_point_loader: turn directories into EntryPoints
- entry_point_finder: directory-walking and targeted discovery
- build_marker: processed markers in package.json
- task_planner: one task per distinct bundle
- bundle / transformer: what a task compiles and how
"""
