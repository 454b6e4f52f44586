"""GetIcon web layer"""
