"""Process exit codes of the update workflow.

A failed test is an outcome, not an error: runs whose baseline or final
check fails still exit with EXIT_OK and say so in the log and in
``UpdateState.status``.
"""

EXIT_OK = 0
EXIT_ERROR = 1
