"""
Task execution for pkgrecompile: task queues and executors.
"""
