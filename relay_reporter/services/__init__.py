"""
Reporter Services

- relay/    - Syncthing relay status client and model
- influxdb/ - InfluxDB writer and line protocol formatting
- reporter/ - Startup connection test, report task and poll loop
"""
