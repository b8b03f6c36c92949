"""dotodo - Plain-text todo list kept in a .todo file.

The nearest .todo file in the current directory or any parent is used,
falling back to ~/.todo. Each line is an item:

    [ ] something to do
    [X] something done

Other lines are left alone.

Installation:
    uv tool install .
"""

__version__ = "0.1.0"
