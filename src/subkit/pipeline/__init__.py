"""
Pipeline：parse → sanitize → serialize / stream，以及 batching → optimize
"""
