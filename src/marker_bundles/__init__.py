"""Fuse partial, noisy observations of fiducial marker bundles into stable bundle poses."""
