"""Performance benchmarks for scalaropt.

This package contains microbenchmarks for the optimizer loops, including
the cost of a full run and the overhead of consuming the progress stream.
"""
