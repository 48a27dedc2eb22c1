"""
Workflow Modules.

Concrete blueprints shipped with the library.  Each module declares its
states and transitions against ``workflow_kernel.domain`` and contains no
engine logic of its own.
"""
