"""Container image model, analysis and the Podman resolver."""