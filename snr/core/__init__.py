"""SNR core: registry protocol, value layer and storage"""
