"""
Tuya cloud power-socket exporter package.

Polls the Tuya mobile cloud API for smart-socket data points, translates
them into named measurements, serves them as Prometheus metrics, and forwards
control writes back to the cloud.

CHANGELOG:
- 2026-10-18: Initial creation

TODO:
- None
"""
