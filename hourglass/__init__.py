# Empty file to make hourglass a package
