"""Camera module for primary ray generation.

Components:
    thin_lens: Thin-lens camera with depth of field and photographic
        exposure (sensor size, focal length, f-number, shutter, ISO)

Note: thin_lens declares Taichi fields and is NOT imported here. Import it
directly after ti.init():
    from lumitrace.camera.thin_lens import setup_camera, generate_ray
"""
