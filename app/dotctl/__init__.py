"""dotctl - Dotfiles provisioning for personal workstations.

Links configuration packages into the home directory, installs the
package bundle, and records installation history.
"""

__version__ = "1.0.0"
