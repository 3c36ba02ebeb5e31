"""
Click commands for the pkgrecompile CLI.
"""
