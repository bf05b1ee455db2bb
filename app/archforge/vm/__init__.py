"""QEMU test harness."""
