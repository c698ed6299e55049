"""SNR command line interface"""
