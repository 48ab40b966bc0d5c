"""
SparkSave test package.
"""
