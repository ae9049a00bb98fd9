"""In-process RSA, CSR and certificate encoding helpers."""
