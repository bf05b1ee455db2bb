"""Core building blocks shared by the installer, repair tool and VM harness."""
