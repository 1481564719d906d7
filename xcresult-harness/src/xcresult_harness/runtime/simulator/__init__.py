"""iOS Simulator runtime helpers.

Thin wrappers around `xcrun simctl`; the unit tests fake `subprocess.run` and
never need a simulator.
"""
