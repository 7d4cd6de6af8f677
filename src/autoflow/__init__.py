"""
autoflow — workflow recording, execution, pattern learning and scheduling
for interactive bash users.

Packages:
    core           errors, logging, settings, file locking
    orchestration  workflow store, recorder, runner, analytics
    patterns       history mining, shortcuts, suggestions
    scheduling     named tasks on the user crontab
    ops            result-returning operations shared by the CLIs
    cli            Typer apps
"""

__version__ = "0.1.0"
