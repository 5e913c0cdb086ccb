"""devmon: live CPU/memory/battery telemetry from Android devices over ADB."""
