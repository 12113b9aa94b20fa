"""
Pipeline module for dmscan batch decoding.

Provides the building blocks of a scan run: directory discovery, the result
store, work partitioning, the decode worker, output writing, and the
coordinator that ties them together.
"""
