"""
# filedb: the archive tree format

A file.db is the index of a virtual file system whose contents are spread
over several data archives: it describes directories and files, and for each
file its sizes, modification time, flags and where to find its bytes.

The format is a tree of tagged nodes serialized depth-first, each node
starting with a 16-bit tag id

 1. attributes: a leaf with a value (string, uint32, uint64 or buffer)
 2. structures: a container delimited by a start and an end tag

The main operations are

 1. decode(): read the bytes and build a validated Node tree
 2. encode(): serialize a Node tree, usually built by FileSystemWriter from
    a snapshot of the file system and the map of its source archives
 3. merge(): combine the snapshots of several sources, the later ones
    overwriting the earlier ones

"""
