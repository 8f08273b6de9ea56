"""
Export Store

PostgreSQL persistence for published plans and exports.
"""
