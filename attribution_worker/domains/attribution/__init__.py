"""
Attribution domain: click matching, adaptive learning and content attribution
"""
