"""
Operator commands.
Each command checks readiness first and prints one JSON document to stdout.
"""
