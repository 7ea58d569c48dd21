"""plantwatch - keeps rendered PlantUML diagrams in sync with their sources.

plantwatch watches a directory tree for ``*.puml`` files and regenerates the
image beside each one whenever it is created or edited, and removes the
image when the source is deleted.

Core behaviour:
- Pre-existing sources are not re-rendered at startup (opt in with --initial)
- Rendering is delegated to the PlantUML command-line tool
- Render failures are logged and never stop the watcher
- Edits to the same file are not serialized unless --sequence is given
"""

__version__ = "0.1.0"
__author__ = "plantwatch Contributors"
