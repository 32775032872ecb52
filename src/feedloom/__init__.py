"""feedloom - RSS/Atom/RDF/JSON Feed 采集服务."""

__version__ = "0.1.0"
