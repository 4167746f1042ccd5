"""
Core: session, access policy, ports and the TaskBoard that ties them together.
"""
