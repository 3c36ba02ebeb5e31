"""
Multi-process execution: a master process distributing tasks to workers.
"""
