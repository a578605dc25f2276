"""ViewModel package for UI state and command surfaces.

Call context:
    ``appbox/app/main.py`` binds the launcher window to ``LauncherVM``, which
    also serves as the pipeline observer.

Dependencies:
    Modules in this package depend on domain types only. I/O adapters and
    use-case orchestration remain outside.
"""
