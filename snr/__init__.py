"""
Sealed Name Registry (SNR)

A pay-to-register name registry with front-running resistance:
- Commit/reveal reservations (salted commitment hashes)
- Length-proportional registration fees
- Fixed lock period with expiry and takeover
- Recoverable credit for displaced owners
"""
